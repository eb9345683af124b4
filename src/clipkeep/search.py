"""Combined search over item content, notes and OCR text with typed filters."""

from dataclasses import dataclass
from enum import Enum

from clipkeep.context import StoreContext
from clipkeep.errors import ValidationError
from clipkeep.models import ClipboardItem, ItemType
from clipkeep.storage import ITEM_COLUMNS, row_to_item
from clipkeep.utils import escape_like


class FilterKind(Enum):
    TYPE = "type"
    PRIVATE = "private"
    FOLDER = "folder"


@dataclass(frozen=True)
class ItemFilter:
    """Restricts a query to one item type, the private set, or one folder.

    Each kind maps to a fixed SQL fragment; the filter value is always bound
    as a parameter.
    """

    kind: FilterKind
    value: str | None = None

    @classmethod
    def of_type(cls, item_type: ItemType | str) -> "ItemFilter":
        return cls(FilterKind.TYPE, ItemType.parse(item_type).value)

    @classmethod
    def private(cls) -> "ItemFilter":
        return cls(FilterKind.PRIVATE)

    @classmethod
    def folder(cls, folder_id: str) -> "ItemFilter":
        return cls(FilterKind.FOLDER, folder_id)

    @classmethod
    def parse(cls, value: str | None) -> "ItemFilter | None":
        """``text|image|file|folder`` filter by type, ``private`` by marker, anything else is a folder id."""
        if not value:
            return None
        if value in {t.value for t in ItemType}:
            return cls.of_type(value)
        if value == "private":
            return cls.private()
        return cls.folder(value)

    def join_clause(self) -> str:
        if self.kind is FilterKind.PRIVATE:
            return "JOIN privacy_marks ON items.id = privacy_marks.item_id"
        if self.kind is FilterKind.FOLDER:
            return "JOIN folder_items ON items.id = folder_items.item_id"
        return ""

    def where_clause(self) -> tuple[str, tuple]:
        if self.kind is FilterKind.TYPE:
            return "items.item_type = ?", (self.value,)
        if self.kind is FilterKind.FOLDER:
            return "folder_items.folder_id = ?", (self.value,)
        return "1 = 1", ()


def _coerce_timestamp(value: int | str, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label} timestamp: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} timestamp: {value!r}") from None


def parse_time_range(start: int | str | None, end: int | str | None) -> tuple[int, int] | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ValidationError("A time range needs both a start and an end timestamp")
    start_ts = _coerce_timestamp(start, "start")
    end_ts = _coerce_timestamp(end, "end")
    if start_ts > end_ts:
        raise ValidationError(f"Time range start {start_ts} is after end {end_ts}")
    return start_ts, end_ts


class SearchService:
    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def search(
        self,
        query: str,
        item_filter: ItemFilter | None = None,
        start: int | str | None = None,
        end: int | str | None = None,
    ) -> list[ClipboardItem]:
        time_range = parse_time_range(start, end)
        pattern = f"%{escape_like(query.casefold())}%"
        sql = [
            f"SELECT {ITEM_COLUMNS} FROM items",
            "LEFT JOIN extensions ON items.id = extensions.item_id",
        ]
        params: list = [pattern, pattern, pattern]
        where = [
            "(casefold(items.content) LIKE ? ESCAPE '\\' OR casefold(items.notes) LIKE ? ESCAPE '\\'"
            " OR casefold(extensions.ocr_text) LIKE ? ESCAPE '\\')"
        ]
        if item_filter is not None:
            sql.append(item_filter.join_clause())
            clause, clause_params = item_filter.where_clause()
            where.append(clause)
            params.extend(clause_params)
        if time_range is not None:
            where.append("items.timestamp BETWEEN ? AND ?")
            params.extend(time_range)
        sql.append("WHERE " + " AND ".join(where))
        sql.append("ORDER BY items.timestamp DESC")

        with self._ctx.db.connect() as conn:
            rows = conn.execute(" ".join(sql), params).fetchall()
        return [row_to_item(r) for r in rows]
