import pytest

from clipkeep.app import ClipkeepApp
from clipkeep.config import Settings
from clipkeep.models import ClipboardItem, ItemType

BASE_TS = 1_700_000_000_000


@pytest.fixture
def app(tmp_path):
    application = ClipkeepApp(
        db_path=tmp_path / "clipkeep.db",
        storage_root=tmp_path,
        settings=Settings(),
    )
    yield application
    application.close()


@pytest.fixture
def make_item():
    """Factory fixture to create ClipboardItem instances for testing."""
    counter = {"n": 0}

    def _make_item(
        content: str = "hello world",
        item_type: ItemType = ItemType.TEXT,
        item_id: str | None = None,
        is_favorite: bool = False,
        notes: str = "",
        timestamp: int | None = None,
        size: int | None = None,
    ) -> ClipboardItem:
        counter["n"] += 1
        return ClipboardItem(
            id=item_id or f"item-{counter['n']}",
            item_type=item_type,
            content=content,
            size=size if size is not None else len(content),
            is_favorite=is_favorite,
            notes=notes,
            timestamp=timestamp if timestamp is not None else BASE_TS + counter["n"],
        )

    return _make_item
