from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from clipkeep.errors import ValidationError


class ItemType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    FOLDER = "folder"

    @classmethod
    def parse(cls, value: "str | ItemType") -> "ItemType":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown item type: {value!r}") from None

    @property
    def has_resource(self) -> bool:
        """Whether content is a path to a file or directory on disk."""
        return self is not ItemType.TEXT


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if key not in data:
        raise ValidationError(f"{kind} record is missing field {key!r}")
    return data[key]


def parse_int(value: Any, label: str) -> int:
    """Coerce ``value`` to int, raising ValidationError for bools and anything non-numeric."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an integer, got {value!r}") from None


def _str_field(value: Any, field: str, kind: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{kind} field {field!r} must be a string, got {value!r}")
    return value


@dataclass
class ClipboardItem:
    id: str
    item_type: ItemType
    content: str
    size: int | None
    is_favorite: bool
    notes: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["item_type"] = self.item_type.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClipboardItem":
        if not isinstance(data, dict):
            raise ValidationError(f"Item record must be an object, got {data!r}")
        size = data.get("size")
        timestamp = _require(data, "timestamp", "item")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValidationError(f"Item timestamp must be an integer, got {timestamp!r}")
        return cls(
            id=str(_require(data, "id", "item")),
            item_type=ItemType.parse(_require(data, "item_type", "item")),
            content=_str_field(_require(data, "content", "item"), "content", "item"),
            size=parse_int(size, "item size") if size is not None else None,
            is_favorite=bool(data.get("is_favorite", False)),
            notes=_str_field(data.get("notes") or "", "notes", "item"),
            timestamp=timestamp,
        )


@dataclass
class Folder:
    id: str
    name: str
    num_items: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Folder":
        return cls(
            id=str(_require(data, "id", "folder")),
            name=str(_require(data, "name", "folder")),
            num_items=parse_int(data.get("num_items", 0), "folder num_items"),
        )


@dataclass
class FolderItemRelation:
    folder_id: str
    item_id: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FolderItemRelation":
        return cls(
            folder_id=str(_require(data, "folder_id", "folder item")),
            item_id=str(_require(data, "item_id", "folder item")),
        )


@dataclass
class ItemExtension:
    item_id: str
    ocr_text: str | None = None
    icon_data: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ItemExtension":
        return cls(
            item_id=str(_require(data, "item_id", "extension")),
            ocr_text=data.get("ocr_text"),
            icon_data=data.get("icon_data"),
        )
