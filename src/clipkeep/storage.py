import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from clipkeep.config import DB_PATH
from clipkeep.errors import StorageUnavailableError
from clipkeep.models import ClipboardItem, Folder, ItemType

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id           TEXT PRIMARY KEY NOT NULL,
    item_type    TEXT NOT NULL CHECK(item_type IN ('text', 'image', 'file', 'folder')),
    content      TEXT NOT NULL,
    size         INTEGER,
    is_favorite  INTEGER NOT NULL DEFAULT 0,
    notes        TEXT NOT NULL DEFAULT '',
    timestamp    INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_timestamp ON items(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_items_type ON items(item_type);

CREATE TABLE IF NOT EXISTS folders (
    id         TEXT PRIMARY KEY NOT NULL,
    name       TEXT NOT NULL,
    num_items  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS folder_items (
    folder_id  TEXT NOT NULL,
    item_id    TEXT NOT NULL,
    PRIMARY KEY (folder_id, item_id),
    FOREIGN KEY (folder_id) REFERENCES folders(id) ON DELETE CASCADE,
    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_folder_items_item ON folder_items(item_id);

CREATE TABLE IF NOT EXISTS extensions (
    item_id    TEXT PRIMARY KEY NOT NULL,
    ocr_text   TEXT,
    icon_data  TEXT,
    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS privacy_marks (
    item_id  TEXT PRIMARY KEY NOT NULL,
    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
);
"""

ITEM_COLUMNS = "items.id, items.item_type, items.content, items.size, items.is_favorite, items.notes, items.timestamp"

RECOUNT_FOLDERS_SQL = """
UPDATE folders SET num_items = (
    SELECT COUNT(*) FROM folder_items WHERE folder_items.folder_id = folders.id
)
"""


def _casefold(value: str | None) -> str | None:
    # LIKE alone folds ASCII only
    return value.casefold() if isinstance(value, str) else value


class Database:
    """Owns the store location and hands out schema-ready connections.

    The path can be swapped at runtime; connections opened before the swap keep
    pointing at the old file until they close.
    """

    def __init__(self, db_path: str | Path | None = None):
        self._path_lock = threading.Lock()
        self._path = Path(db_path) if db_path else DB_PATH

    @property
    def path(self) -> Path:
        with self._path_lock:
            return self._path

    def set_path(self, db_path: str | Path) -> None:
        with self._path_lock:
            self._path = Path(db_path)
        logger.info("Store path updated to %s", db_path)

    def init_db(self) -> None:
        with self.connect():
            pass

    @staticmethod
    def _open(path: Path) -> sqlite3.Connection:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path), timeout=10.0)
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailableError(f"Cannot open store at {path}: {exc}") from exc
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            conn.create_function("casefold", 1, _casefold, deterministic=True)
            conn.executescript(SCHEMA)
        except sqlite3.Error as exc:
            conn.close()
            raise StorageUnavailableError(f"Cannot ensure schema at {path}: {exc}") from exc
        return conn

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commit on success, roll back everything on error."""
        conn = self._open(self.path)
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()


def recount_folders(conn: sqlite3.Connection) -> None:
    conn.execute(RECOUNT_FOLDERS_SQL)


def row_to_item(row: sqlite3.Row) -> ClipboardItem:
    return ClipboardItem(
        id=row["id"],
        item_type=ItemType(row["item_type"]),
        content=row["content"],
        size=row["size"],
        is_favorite=bool(row["is_favorite"]),
        notes=row["notes"] or "",
        timestamp=row["timestamp"],
    )


def row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(id=row["id"], name=row["name"], num_items=row["num_items"])
