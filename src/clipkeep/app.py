import logging
from pathlib import Path

from clipkeep.config import DATA_DIR, Settings, load_settings
from clipkeep.context import StoreContext
from clipkeep.extensions import ExtensionStore
from clipkeep.folders import FolderStore
from clipkeep.items import ItemStore
from clipkeep.privacy import PrivacyStore
from clipkeep.retention import RetentionEngine, RetentionWorker
from clipkeep.search import SearchService
from clipkeep.storage import Database
from clipkeep.sync import SyncMerger

logger = logging.getLogger(__name__)


class ClipkeepApp:
    """Wires one store context to every component that operates on it."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        storage_root: str | Path | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or load_settings()
        self.ctx = StoreContext(
            db=Database(db_path),
            storage_root=Path(storage_root) if storage_root else DATA_DIR,
        )
        self.ctx.db.init_db()
        self.items = ItemStore(self.ctx)
        self.folders = FolderStore(self.ctx)
        self.extensions = ExtensionStore(self.ctx)
        self.privacy = PrivacyStore(self.ctx)
        self.retention = RetentionEngine(self.ctx)
        self.search = SearchService(self.ctx)
        self.sync = SyncMerger(self.ctx)
        self._worker = RetentionWorker(
            self.retention,
            self.ctx.cleanup_channel,
            lambda: self.settings.retention,
        )

    @property
    def retention_worker(self) -> RetentionWorker:
        return self._worker

    def set_db_path(self, db_path: str | Path) -> None:
        self.ctx.db.set_path(db_path)
        self.ctx.db.init_db()
        self.ctx.latest.clear()

    def update_settings(self, settings: Settings) -> None:
        self.settings = settings

    def start_retention(self) -> None:
        self._worker.start()

    def close(self) -> None:
        self._worker.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
