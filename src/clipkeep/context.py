"""Shared state handed to every store: database, resource root, latest-item cache, cleanup channel."""

import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path

from clipkeep.config import DATA_DIR
from clipkeep.errors import CleanupUnavailableError
from clipkeep.models import ClipboardItem
from clipkeep.storage import Database


class LatestItemCache:
    """Single slot holding the most recently inserted item. Last write wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._item: ClipboardItem | None = None

    def set(self, item: ClipboardItem) -> None:
        with self._lock:
            self._item = item

    def get(self) -> ClipboardItem | None:
        with self._lock:
            return self._item

    def clear(self) -> None:
        with self._lock:
            self._item = None

    def discard(self, item_ids: "set[str]") -> bool:
        """Clear the slot only if it still holds one of ``item_ids``."""
        with self._lock:
            if self._item is not None and self._item.id in item_ids:
                self._item = None
                return True
            return False


class CleanupChannel:
    """Fire-and-forget notifications for the retention worker.

    The consumer may be absent: ``notify`` is then a silent no-op. The queue is
    unbounded so senders never block on a slow consumer.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queue: queue.SimpleQueue | None = None

    def attach(self) -> queue.SimpleQueue:
        with self._lock:
            self._queue = queue.SimpleQueue()
            return self._queue

    def detach(self) -> None:
        with self._lock:
            self._queue = None

    @property
    def has_consumer(self) -> bool:
        with self._lock:
            return self._queue is not None

    def notify(self) -> bool:
        with self._lock:
            q = self._queue
        if q is None:
            return False
        q.put_nowait(None)
        return True

    def trigger(self) -> None:
        if not self.notify():
            raise CleanupUnavailableError("cleanup worker not started")


@dataclass
class StoreContext:
    db: Database
    storage_root: Path = DATA_DIR
    latest: LatestItemCache = field(default_factory=LatestItemCache)
    cleanup_channel: CleanupChannel = field(default_factory=CleanupChannel)
