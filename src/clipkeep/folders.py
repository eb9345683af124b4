import logging
import uuid

from clipkeep.context import StoreContext
from clipkeep.models import ClipboardItem, Folder
from clipkeep.storage import ITEM_COLUMNS, row_to_folder, row_to_item

logger = logging.getLogger(__name__)


class FolderStore:
    """Named groups of items with a denormalised member count per folder.

    ``num_items`` is adjusted in the same transaction as the membership change
    that causes it, so it always equals the number of ``folder_items`` rows.
    """

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def create(self, name: str) -> str:
        folder_id = str(uuid.uuid4())
        with self._ctx.db.connect() as conn:
            conn.execute(
                "INSERT INTO folders (id, name, num_items) VALUES (?, ?, 0)",
                (folder_id, name),
            )
        return folder_id

    def rename(self, folder_id: str, new_name: str) -> int:
        with self._ctx.db.connect() as conn:
            return conn.execute("UPDATE folders SET name = ? WHERE id = ?", (new_name, folder_id)).rowcount

    def delete(self, folder_id: str) -> int:
        with self._ctx.db.connect() as conn:
            rows = conn.execute("DELETE FROM folders WHERE id = ?", (folder_id,)).rowcount
        if rows:
            logger.info("Deleted folder %s", folder_id)
        return rows

    def get(self, folder_id: str) -> Folder | None:
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT id, name, num_items FROM folders WHERE id = ?", (folder_id,)).fetchone()
        return row_to_folder(row) if row else None

    def list_all(self) -> list[Folder]:
        with self._ctx.db.connect() as conn:
            rows = conn.execute("SELECT id, name, num_items FROM folders ORDER BY name, id").fetchall()
        return [row_to_folder(r) for r in rows]

    def add_item(self, folder_id: str, item_id: str) -> bool:
        """Add an item to a folder. Returns False if it was already a member."""
        with self._ctx.db.connect() as conn:
            inserted = conn.execute(
                "INSERT OR IGNORE INTO folder_items (folder_id, item_id) VALUES (?, ?)",
                (folder_id, item_id),
            ).rowcount
            if inserted:
                conn.execute("UPDATE folders SET num_items = num_items + 1 WHERE id = ?", (folder_id,))
        return bool(inserted)

    def remove_item(self, folder_id: str, item_id: str) -> bool:
        """Remove an item from a folder. Returns False if it was not a member."""
        with self._ctx.db.connect() as conn:
            deleted = conn.execute(
                "DELETE FROM folder_items WHERE folder_id = ? AND item_id = ?",
                (folder_id, item_id),
            ).rowcount
            if deleted:
                conn.execute(
                    "UPDATE folders SET num_items = num_items - 1 WHERE id = ? AND num_items > 0",
                    (folder_id,),
                )
        return bool(deleted)

    def filter_items_by_folder(self, name: str) -> list[ClipboardItem]:
        """Items in every folder called ``name`` (names are not unique), newest first."""
        with self._ctx.db.connect() as conn:
            rows = conn.execute(
                f"""SELECT DISTINCT {ITEM_COLUMNS} FROM items
                    JOIN folder_items ON items.id = folder_items.item_id
                    JOIN folders ON folder_items.folder_id = folders.id
                    WHERE folders.name = ?
                    ORDER BY items.timestamp DESC""",
                (name,),
            ).fetchall()
        return [row_to_item(r) for r in rows]

    def folders_for_item(self, item_id: str) -> list[Folder]:
        with self._ctx.db.connect() as conn:
            rows = conn.execute(
                """SELECT folders.id, folders.name, folders.num_items FROM folders
                   JOIN folder_items ON folders.id = folder_items.folder_id
                   WHERE folder_items.item_id = ?
                   ORDER BY folders.name, folders.id""",
                (item_id,),
            ).fetchall()
        return [row_to_folder(r) for r in rows]

    def membership_count(self, folder_id: str) -> int:
        """Count members straight from the relation, independent of ``num_items``."""
        with self._ctx.db.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS cnt FROM folder_items WHERE folder_id = ?", (folder_id,)
            ).fetchone()
        return row["cnt"]
