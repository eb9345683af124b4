import logging
import sqlite3
import uuid

from clipkeep.context import StoreContext
from clipkeep.errors import ItemNotFoundError, ValidationError
from clipkeep.models import ClipboardItem, ItemType
from clipkeep.search import ItemFilter
from clipkeep.storage import ITEM_COLUMNS, recount_folders, row_to_item
from clipkeep.utils import (
    delete_resource,
    is_relative_resource,
    normalize_separators,
    now_ms,
    resolve_resource_path,
)

logger = logging.getLogger(__name__)

UPSERT_ITEM_SQL = """
INSERT INTO items (id, item_type, content, size, is_favorite, notes, timestamp)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    item_type = excluded.item_type,
    content = excluded.content,
    size = excluded.size,
    is_favorite = excluded.is_favorite,
    notes = excluded.notes,
    timestamp = excluded.timestamp
"""


def item_params(item: ClipboardItem) -> tuple:
    return (
        item.id,
        item.item_type.value,
        item.content,
        item.size,
        int(item.is_favorite),
        item.notes,
        item.timestamp,
    )


class ItemStore:
    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def insert_or_replace(self, item: ClipboardItem) -> ClipboardItem:
        """Write ``item``, replacing any row with the same id in place.

        Folder memberships, extensions and privacy marks of a replaced row are kept.
        """
        with self._ctx.db.connect() as conn:
            conn.execute(UPSERT_ITEM_SQL, item_params(item))
        self._ctx.latest.set(item)
        self._ctx.cleanup_channel.notify()
        return item

    def insert_text(self, text: str) -> ClipboardItem:
        item = ClipboardItem(
            id=str(uuid.uuid4()),
            item_type=ItemType.TEXT,
            content=text,
            size=len(text),
            is_favorite=False,
            notes="",
            timestamp=now_ms(),
        )
        return self.insert_or_replace(item)

    def latest(self) -> ClipboardItem | None:
        return self._ctx.latest.get()

    def get(self, item_id: str) -> ClipboardItem | None:
        with self._ctx.db.connect() as conn:
            row = conn.execute(f"SELECT {ITEM_COLUMNS} FROM items WHERE id = ?", (item_id,)).fetchone()
        return row_to_item(row) if row else None

    def get_all(self) -> list[ClipboardItem]:
        return self._query(f"SELECT {ITEM_COLUMNS} FROM items ORDER BY timestamp DESC")

    def count(self) -> int:
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
        return row["cnt"]

    def delete(self, item_id: str) -> int:
        """Delete one item and, best effort, the file or directory behind it."""
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT item_type, content FROM items WHERE id = ?", (item_id,)).fetchone()
            if row is None:
                return 0
            item_type = ItemType(row["item_type"])
            if item_type.has_resource:
                path = resolve_resource_path(row["content"], self._ctx.storage_root)
                delete_resource(path, item_type, item_id)
            rows = conn.execute("DELETE FROM items WHERE id = ?", (item_id,)).rowcount
            recount_folders(conn)
        self._forget_latest({item_id})
        return rows

    def delete_all(self, item_filter: ItemFilter | None = None, keep_favorites: bool = False) -> int:
        select = ["SELECT items.id FROM items"]
        params: tuple = ()
        where = ["1 = 1"]
        if item_filter is not None:
            select.append(item_filter.join_clause())
            clause, params = item_filter.where_clause()
            where.append(clause)
        if keep_favorites:
            where.append("items.is_favorite = 0")
        select.append("WHERE " + " AND ".join(where))

        with self._ctx.db.connect() as conn:
            ids = {r["id"] for r in conn.execute(" ".join(select), params).fetchall()}
            rows = conn.execute(
                f"DELETE FROM items WHERE id IN ({' '.join(select)})", params
            ).rowcount
            recount_folders(conn)
        self._forget_latest(ids)
        logger.info("Deleted %d items (filter=%s, keep_favorites=%s)", rows, item_filter, keep_favorites)
        return rows

    def update_content(self, item_id: str, content: str) -> ClipboardItem:
        return self._update_and_fetch("UPDATE items SET content = ? WHERE id = ?", (content, item_id), item_id)

    def update_notes(self, item_id: str, notes: str) -> ClipboardItem:
        return self._update_and_fetch("UPDATE items SET notes = ? WHERE id = ?", (notes, item_id), item_id)

    def top(self, item_id: str) -> ClipboardItem:
        """Re-stamp an item to now so it sorts first."""
        return self._update_and_fetch("UPDATE items SET timestamp = ? WHERE id = ?", (now_ms(), item_id), item_id)

    def set_favorite(self, item_id: str, is_favorite: bool) -> int:
        with self._ctx.db.connect() as conn:
            return conn.execute(
                "UPDATE items SET is_favorite = ? WHERE id = ?", (int(is_favorite), item_id)
            ).rowcount

    def toggle_favorite(self, item_id: str) -> str:
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"Item not found: {item_id}")
        self.set_favorite(item_id, not item.is_favorite)
        return "unfavorited" if item.is_favorite else "favorited"

    def favorite_count(self) -> int:
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM items WHERE is_favorite = 1").fetchone()
        return row["cnt"]

    def filter_by_type(self, item_type: ItemType | str) -> list[ClipboardItem]:
        """Items of one type, newest first.

        ``file`` and ``folder`` are treated as one group: asking for either
        returns both.
        """
        parsed = ItemType.parse(item_type)
        if parsed in (ItemType.FILE, ItemType.FOLDER):
            return self._query(
                f"SELECT {ITEM_COLUMNS} FROM items WHERE item_type IN ('file', 'folder') ORDER BY timestamp DESC"
            )
        return self._query(
            f"SELECT {ITEM_COLUMNS} FROM items WHERE item_type = ? ORDER BY timestamp DESC",
            (parsed.value,),
        )

    def filter_by_favorite(self, is_favorite: bool) -> list[ClipboardItem]:
        return self._query(
            f"SELECT {ITEM_COLUMNS} FROM items WHERE is_favorite = ? ORDER BY timestamp DESC",
            (int(is_favorite),),
        )

    def rewrite_path_prefix(self, old_prefix: str, new_prefix: str) -> int:
        """Point file/image/folder items at a moved storage root.

        Runs as one transaction: either every matching row is rewritten or none is.
        """
        if not old_prefix:
            raise ValidationError("Old path prefix must not be empty")
        normalized_old = normalize_separators(old_prefix)
        new_root = new_prefix.rstrip("/\\")
        count = 0
        with self._ctx.db.connect() as conn:
            rows = conn.execute(
                "SELECT id, content FROM items WHERE item_type IN ('file', 'image', 'folder')"
            ).fetchall()
            for row in rows:
                content = row["content"]
                new_content = self._rewritten_path(content, normalized_old, new_prefix, new_root)
                if new_content is None or new_content == content:
                    continue
                conn.execute("UPDATE items SET content = ? WHERE id = ?", (new_content, row["id"]))
                count += 1
        logger.info("Rewrote %d item paths from %s to %s", count, old_prefix, new_prefix)
        return count

    @staticmethod
    def _rewritten_path(content: str, normalized_old: str, new_prefix: str, new_root: str) -> str | None:
        normalized = normalize_separators(content)
        if normalized.startswith(normalized_old):
            return new_prefix + content[len(normalized_old):]
        if is_relative_resource(content):
            # Relative to the storage root, still valid after the move
            return None
        if "/files/" in normalized:
            rest = normalized.rsplit("/files/", 1)[1]
            return f"{new_root}/files/{rest}"
        return None

    def _update_and_fetch(self, sql: str, params: tuple, item_id: str) -> ClipboardItem:
        with self._ctx.db.connect() as conn:
            conn.execute(sql, params)
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"Item not found after update: {item_id}")
        return item

    def _forget_latest(self, deleted_ids: set[str]) -> None:
        self._ctx.latest.discard(deleted_ids)

    def _query(self, sql: str, params: tuple = ()) -> list[ClipboardItem]:
        with self._ctx.db.connect() as conn:
            rows: list[sqlite3.Row] = conn.execute(sql, params).fetchall()
        return [row_to_item(r) for r in rows]
