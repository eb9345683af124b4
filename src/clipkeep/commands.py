"""Named command surface over the stores.

Every command returns plain data or a record; ``invoke`` turns failures into
an error string so callers never see an exception for ordinary bad input.
"""

import inspect
import json
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from clipkeep.app import ClipkeepApp
from clipkeep.config import PrivacyFlags, RetentionSettings
from clipkeep.errors import ClipkeepError, ItemNotFoundError, ValidationError
from clipkeep.models import ClipboardItem, parse_int
from clipkeep.search import ItemFilter
from clipkeep.sync import SyncSnapshot

logger = logging.getLogger(__name__)

COMMANDS: dict[str, Callable[..., Any]] = {}


@dataclass
class CommandResult:
    ok: bool
    data: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": serialize(self.data)}
        return {"ok": False, "error": self.error}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def command(name: str):
    def register(fn: Callable[..., Any]) -> Callable[..., Any]:
        COMMANDS[name] = fn
        return fn

    return register


def invoke(app: ClipkeepApp, name: str, /, **params: Any) -> CommandResult:
    fn = COMMANDS.get(name)
    if fn is None:
        return CommandResult(ok=False, error=f"Unknown command: {name}")
    try:
        inspect.signature(fn).bind(app, **params)
    except TypeError as exc:
        return CommandResult(ok=False, error=f"Invalid parameters for {name}: {exc}")
    try:
        return CommandResult(ok=True, data=fn(app, **params))
    except (ClipkeepError, sqlite3.Error) as exc:
        logger.warning("Command %s failed: %s", name, exc)
        return CommandResult(ok=False, error=str(exc))


def _require_item(app: ClipkeepApp, item_id: str) -> ClipboardItem:
    item = app.items.get(item_id)
    if item is None:
        raise ItemNotFoundError(f"Item not found: {item_id}")
    return item


def _flags(app: ClipkeepApp, overrides: dict[str, bool | None]) -> PrivacyFlags:
    current = app.settings.privacy
    return PrivacyFlags(
        password=current.password if overrides.get("password") is None else overrides["password"],
        bank_card=current.bank_card if overrides.get("bank_card") is None else overrides["bank_card"],
        id_number=current.id_number if overrides.get("id_number") is None else overrides["id_number"],
        phone=current.phone if overrides.get("phone") is None else overrides["phone"],
    )


# Items


@command("insert_item")
def insert_item(app: ClipkeepApp, item: dict[str, Any]) -> ClipboardItem:
    return app.items.insert_or_replace(ClipboardItem.from_dict(item))


@command("insert_text")
def insert_text(app: ClipkeepApp, text: str) -> ClipboardItem:
    return app.items.insert_text(text)


@command("get_latest")
def get_latest(app: ClipkeepApp) -> ClipboardItem | None:
    return app.items.latest()


@command("get_item")
def get_item(app: ClipkeepApp, id: str) -> ClipboardItem | None:
    return app.items.get(id)


@command("get_all")
def get_all(app: ClipkeepApp) -> list[ClipboardItem]:
    return app.items.get_all()


@command("delete_item")
def delete_item(app: ClipkeepApp, id: str) -> int:
    return app.items.delete(id)


@command("delete_all")
def delete_all(app: ClipkeepApp, item_type: str | None = None, keep_favorites: bool = False) -> int:
    return app.items.delete_all(ItemFilter.parse(item_type), keep_favorites)


@command("update_content")
def update_content(app: ClipkeepApp, id: str, content: str) -> ClipboardItem:
    return app.items.update_content(id, content)


@command("update_notes")
def update_notes(app: ClipkeepApp, id: str, notes: str) -> ClipboardItem:
    return app.items.update_notes(id, notes)


@command("set_favorite")
def set_favorite(app: ClipkeepApp, id: str, is_favorite: bool) -> int:
    return app.items.set_favorite(id, is_favorite)


@command("toggle_favorite")
def toggle_favorite(app: ClipkeepApp, id: str) -> str:
    return app.items.toggle_favorite(id)


@command("favorite_count")
def favorite_count(app: ClipkeepApp) -> int:
    return app.items.favorite_count()


@command("top_item")
def top_item(app: ClipkeepApp, id: str) -> ClipboardItem:
    return app.items.top(id)


@command("filter_by_type")
def filter_by_type(app: ClipkeepApp, item_type: str) -> list[ClipboardItem]:
    return app.items.filter_by_type(item_type)


@command("filter_by_favorite")
def filter_by_favorite(app: ClipkeepApp, is_favorite: bool) -> list[ClipboardItem]:
    return app.items.filter_by_favorite(is_favorite)


@command("rewrite_paths")
def rewrite_paths(app: ClipkeepApp, old_path: str, new_path: str) -> int:
    return app.items.rewrite_path_prefix(old_path, new_path)


@command("search")
def search(
    app: ClipkeepApp,
    query: str,
    item_type: str | None = None,
    start: int | str | None = None,
    end: int | str | None = None,
) -> list[ClipboardItem]:
    return app.search.search(query, ItemFilter.parse(item_type), start, end)


@command("set_db_path")
def set_db_path(app: ClipkeepApp, path: str) -> str:
    app.set_db_path(path)
    return str(app.ctx.db.path)


# Folders


@command("create_folder")
def create_folder(app: ClipkeepApp, name: str) -> str:
    return app.folders.create(name)


@command("rename_folder")
def rename_folder(app: ClipkeepApp, folder_id: str, name: str) -> int:
    return app.folders.rename(folder_id, name)


@command("delete_folder")
def delete_folder(app: ClipkeepApp, folder_id: str) -> int:
    return app.folders.delete(folder_id)


@command("list_folders")
def list_folders(app: ClipkeepApp):
    return app.folders.list_all()


@command("add_to_folder")
def add_to_folder(app: ClipkeepApp, folder_id: str, item_id: str) -> bool:
    return app.folders.add_item(folder_id, item_id)


@command("remove_from_folder")
def remove_from_folder(app: ClipkeepApp, folder_id: str, item_id: str) -> bool:
    return app.folders.remove_item(folder_id, item_id)


@command("filter_by_folder")
def filter_by_folder(app: ClipkeepApp, name: str) -> list[ClipboardItem]:
    return app.folders.filter_items_by_folder(name)


@command("folders_for_item")
def folders_for_item(app: ClipkeepApp, item_id: str):
    return app.folders.folders_for_item(item_id)


# Extensions


@command("put_ocr_text")
def put_ocr_text(app: ClipkeepApp, item_id: str, text: str) -> None:
    app.extensions.put_ocr_text(item_id, text)


@command("get_ocr_text")
def get_ocr_text(app: ClipkeepApp, item_id: str) -> str:
    return app.extensions.get_ocr_text(item_id)


@command("put_icon")
def put_icon(app: ClipkeepApp, item_id: str, data: str) -> None:
    app.extensions.put_icon(item_id, data)


@command("get_icon")
def get_icon(app: ClipkeepApp, item_id: str) -> str:
    return app.extensions.get_icon(item_id)


@command("search_ocr")
def search_ocr(app: ClipkeepApp, query: str) -> list[ClipboardItem]:
    return app.extensions.search_by_ocr(query)


# Privacy


@command("mark_passwords")
def mark_passwords(app: ClipkeepApp, to_add: bool = True) -> int:
    return app.privacy.mark_passwords(to_add)


@command("mark_bank_cards")
def mark_bank_cards(app: ClipkeepApp, to_add: bool = True) -> int:
    return app.privacy.mark_bank_cards(to_add)


@command("mark_id_numbers")
def mark_id_numbers(app: ClipkeepApp, to_add: bool = True) -> int:
    return app.privacy.mark_id_numbers(to_add)


@command("mark_phone_numbers")
def mark_phone_numbers(app: ClipkeepApp, to_add: bool = True) -> int:
    return app.privacy.mark_phone_numbers(to_add)


@command("auto_mark")
def auto_mark(
    app: ClipkeepApp,
    password: bool | None = None,
    bank_card: bool | None = None,
    id_number: bool | None = None,
    phone: bool | None = None,
) -> int:
    flags = _flags(app, {"password": password, "bank_card": bank_card, "id_number": id_number, "phone": phone})
    return app.privacy.auto_mark(flags)


@command("check_item_privacy")
def check_item_privacy(
    app: ClipkeepApp,
    id: str,
    password: bool | None = None,
    bank_card: bool | None = None,
    id_number: bool | None = None,
    phone: bool | None = None,
) -> bool:
    flags = _flags(app, {"password": password, "bank_card": bank_card, "id_number": id_number, "phone": phone})
    return app.privacy.check_and_mark_single_item(_require_item(app, id), flags)


@command("is_private")
def is_private(app: ClipkeepApp, id: str) -> bool:
    return app.privacy.is_private(id)


@command("list_private")
def list_private(app: ClipkeepApp) -> list[ClipboardItem]:
    return app.privacy.list_private()


@command("clear_private")
def clear_private(app: ClipkeepApp) -> int:
    return app.privacy.clear_all()


# Retention


@command("expire_older_than")
def expire_older_than(app: ClipkeepApp, days: int) -> int:
    return app.retention.expire_older_than(parse_int(days, "days"))


@command("enforce_max_count")
def enforce_max_count(app: ClipkeepApp, max_items: int) -> int:
    return app.retention.enforce_max_count(parse_int(max_items, "max_items"))


@command("run_retention")
def run_retention(app: ClipkeepApp, retention_days: int | None = None, max_history_items: int | None = None) -> int:
    current = app.settings.retention
    if retention_days is not None:
        retention_days = parse_int(retention_days, "retention_days")
        if retention_days < 0:
            raise ValidationError(f"retention_days must not be negative, got {retention_days}")
    settings = RetentionSettings(
        retention_days=current.retention_days if retention_days is None else retention_days,
        max_history_items=(
            current.max_history_items if max_history_items is None else parse_int(max_history_items, "max_history_items")
        ),
    )
    return app.retention.run(settings)


@command("trigger_cleanup")
def trigger_cleanup(app: ClipkeepApp) -> str:
    app.ctx.cleanup_channel.trigger()
    return "cleanup triggered"


# Sync


def _snapshot(payload: str | dict[str, Any]) -> SyncSnapshot:
    if isinstance(payload, str):
        return SyncSnapshot.from_json(payload)
    return SyncSnapshot.from_dict(payload)


@command("sync_merge")
def sync_merge(app: ClipkeepApp, payload: str | dict[str, Any]):
    return app.sync.merge(_snapshot(payload))


@command("sync_merge_encrypted")
def sync_merge_encrypted(app: ClipkeepApp, payload: str | dict[str, Any], dek_hex: str):
    return app.sync.merge_encrypted(_snapshot(payload), dek_hex)


@command("export_snapshot")
def export_snapshot(app: ClipkeepApp, dek_hex: str | None = None) -> SyncSnapshot:
    return app.sync.export_snapshot(dek_hex)
