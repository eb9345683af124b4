import logging
import queue
import threading
from collections.abc import Callable

from clipkeep.config import MS_PER_DAY, RetentionSettings
from clipkeep.context import CleanupChannel, StoreContext
from clipkeep.errors import ValidationError
from clipkeep.storage import recount_folders
from clipkeep.utils import now_ms

logger = logging.getLogger(__name__)


class RetentionEngine:
    """Age- and count-based eviction. Favorited items are never evicted."""

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def expire_older_than(self, days: int) -> int:
        if days < 0:
            raise ValidationError(f"Retention days must not be negative, got {days}")
        cutoff = now_ms() - days * MS_PER_DAY
        with self._ctx.db.connect() as conn:
            deleted = conn.execute(
                "DELETE FROM items WHERE timestamp < ? AND is_favorite = 0", (cutoff,)
            ).rowcount
            if deleted:
                recount_folders(conn)
        self._forget_latest_if_gone()
        return deleted

    def enforce_max_count(self, max_items: int) -> int:
        """Keep at most ``max_items`` non-favorite items, dropping the oldest. 0 disables."""
        if max_items <= 0:
            return 0
        with self._ctx.db.connect() as conn:
            total = conn.execute("SELECT COUNT(*) AS cnt FROM items WHERE is_favorite = 0").fetchone()["cnt"]
            if total <= max_items:
                return 0
            deleted = conn.execute(
                """DELETE FROM items WHERE id IN (
                       SELECT id FROM items WHERE is_favorite = 0
                       ORDER BY timestamp ASC
                       LIMIT ?
                   )""",
                (total - max_items,),
            ).rowcount
            recount_folders(conn)
        self._forget_latest_if_gone()
        return deleted

    def run(self, settings: RetentionSettings) -> int:
        deleted = 0
        if settings.retention_days > 0:
            deleted += self.expire_older_than(settings.retention_days)
        deleted += self.enforce_max_count(settings.max_history_items)
        if deleted:
            logger.info("Retention removed %d item(s)", deleted)
        return deleted

    def _forget_latest_if_gone(self) -> None:
        latest = self._ctx.latest.get()
        if latest is None:
            return
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT 1 FROM items WHERE id = ?", (latest.id,)).fetchone()
        if row is None:
            self._ctx.latest.discard({latest.id})


class RetentionWorker:
    """Background thread that runs retention whenever the cleanup channel is notified.

    Notifications that pile up while a pass runs are coalesced into the next pass.
    """

    def __init__(
        self,
        engine: RetentionEngine,
        channel: CleanupChannel,
        settings_provider: Callable[[], RetentionSettings],
        poll_interval: float = 0.5,
    ):
        self._engine = engine
        self._channel = channel
        self._settings_provider = settings_provider
        self._poll_interval = poll_interval
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._queue: queue.SimpleQueue | None = None
        self.passes = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._queue = self._channel.attach()
        self._thread = threading.Thread(target=self._run, name="clipkeep-retention", daemon=True)
        self._thread.start()
        logger.info("Retention worker started")

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._channel.detach()
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Retention worker stopped")

    def tick(self) -> int:
        try:
            deleted = self._engine.run(self._settings_provider())
        except Exception:
            logger.exception("Retention pass failed")
            return 0
        finally:
            self.passes += 1
        return deleted

    def _run(self) -> None:
        assert self._queue is not None
        while not self._stop.is_set():
            try:
                self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            self._drain()
            self.tick()

    def _drain(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
