"""Insert-only merge of an externally supplied snapshot into the local store.

Rows whose primary key already exists locally are left untouched. The whole
merge is one transaction: on any failure nothing from the snapshot is kept.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass, field, replace
from typing import Any

from clipkeep.context import StoreContext
from clipkeep.crypto import decrypt_or_passthrough, encrypt_text, parse_dek
from clipkeep.errors import SyncError, ValidationError
from clipkeep.items import item_params
from clipkeep.models import ClipboardItem, Folder, FolderItemRelation, ItemExtension
from clipkeep.storage import ITEM_COLUMNS, recount_folders, row_to_folder, row_to_item

logger = logging.getLogger(__name__)


@dataclass
class SyncSnapshot:
    items: list[ClipboardItem] = field(default_factory=list)
    folders: list[Folder] = field(default_factory=list)
    folder_items: list[FolderItemRelation] = field(default_factory=list)
    extensions: list[ItemExtension] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncSnapshot":
        if not isinstance(data, dict):
            raise ValidationError("Sync payload must be an object")
        try:
            return cls(
                items=[ClipboardItem.from_dict(d) for d in cls._records(data, "items", "data")],
                folders=[Folder.from_dict(d) for d in cls._records(data, "folders")],
                folder_items=[FolderItemRelation.from_dict(d) for d in cls._records(data, "folder_items")],
                extensions=[ItemExtension.from_dict(d) for d in cls._records(data, "extensions", "extended_data")],
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed sync payload: {exc}") from exc

    @classmethod
    def from_json(cls, payload: str) -> "SyncSnapshot":
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Sync payload is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "folders": [f.to_dict() for f in self.folders],
            "folder_items": [r.to_dict() for r in self.folder_items],
            "extensions": [e.to_dict() for e in self.extensions],
        }

    @staticmethod
    def _records(data: dict[str, Any], key: str, alias: str | None = None) -> list[dict[str, Any]]:
        records = data.get(key)
        if records is None and alias is not None:
            records = data.get(alias)
        records = records or []
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ValidationError(f"Sync payload field {key!r} must be a list of objects")
        return records


@dataclass
class MergeReport:
    items: int = 0
    folders: int = 0
    folder_items: int = 0
    extensions: int = 0

    @property
    def total(self) -> int:
        return self.items + self.folders + self.folder_items + self.extensions

    def to_dict(self) -> dict[str, int]:
        return {
            "items": self.items,
            "folders": self.folders,
            "folder_items": self.folder_items,
            "extensions": self.extensions,
        }


class SyncMerger:
    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def merge(self, snapshot: SyncSnapshot) -> MergeReport:
        report = MergeReport()
        try:
            with self._ctx.db.connect() as conn:
                for item in snapshot.items:
                    report.items += conn.execute(
                        """INSERT OR IGNORE INTO items
                           (id, item_type, content, size, is_favorite, notes, timestamp)
                           VALUES (?, ?, ?, ?, ?, ?, ?)""",
                        item_params(item),
                    ).rowcount
                for folder in snapshot.folders:
                    report.folders += conn.execute(
                        "INSERT OR IGNORE INTO folders (id, name, num_items) VALUES (?, ?, ?)",
                        (folder.id, folder.name, folder.num_items),
                    ).rowcount
                for relation in snapshot.folder_items:
                    report.folder_items += conn.execute(
                        "INSERT OR IGNORE INTO folder_items (folder_id, item_id) VALUES (?, ?)",
                        (relation.folder_id, relation.item_id),
                    ).rowcount
                for ext in snapshot.extensions:
                    report.extensions += conn.execute(
                        "INSERT OR IGNORE INTO extensions (item_id, ocr_text, icon_data) VALUES (?, ?, ?)",
                        (ext.item_id, ext.ocr_text, ext.icon_data),
                    ).rowcount
                # Counters must match membership, whatever the snapshot claimed
                recount_folders(conn)
        except sqlite3.Error as exc:
            logger.warning("Sync merge aborted, nothing written: %s", exc)
            raise SyncError(f"Sync merge aborted: {exc}") from exc

        logger.info("Sync merge inserted %s", report.to_dict())
        return report

    def merge_json(self, payload: str) -> MergeReport:
        return self.merge(SyncSnapshot.from_json(payload))

    def merge_encrypted(self, snapshot: SyncSnapshot, dek_hex: str) -> MergeReport:
        """Merge a snapshot whose item content and notes may be AES-GCM encrypted.

        Fields that fail to decrypt are merged as they are.
        """
        key = parse_dek(dek_hex)
        items = [
            replace(
                item,
                content=decrypt_or_passthrough(key, item.content),
                notes=decrypt_or_passthrough(key, item.notes),
            )
            for item in snapshot.items
        ]
        return self.merge(replace(snapshot, items=items))

    def export_snapshot(self, dek_hex: str | None = None) -> SyncSnapshot:
        """Read the whole store as a snapshot, encrypting content and notes when a key is given."""
        key = parse_dek(dek_hex) if dek_hex is not None else None
        with self._ctx.db.connect() as conn:
            items = [row_to_item(r) for r in conn.execute(f"SELECT {ITEM_COLUMNS} FROM items ORDER BY timestamp")]
            folders = [row_to_folder(r) for r in conn.execute("SELECT id, name, num_items FROM folders ORDER BY id")]
            relations = [
                FolderItemRelation(folder_id=r["folder_id"], item_id=r["item_id"])
                for r in conn.execute("SELECT folder_id, item_id FROM folder_items ORDER BY folder_id, item_id")
            ]
            extensions = [
                ItemExtension(item_id=r["item_id"], ocr_text=r["ocr_text"], icon_data=r["icon_data"])
                for r in conn.execute("SELECT item_id, ocr_text, icon_data FROM extensions ORDER BY item_id")
            ]
        if key is not None:
            items = [
                replace(item, content=encrypt_text(key, item.content), notes=encrypt_text(key, item.notes))
                for item in items
            ]
        return SyncSnapshot(items=items, folders=folders, folder_items=relations, extensions=extensions)
