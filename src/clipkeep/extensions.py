from clipkeep.context import StoreContext
from clipkeep.models import ClipboardItem
from clipkeep.storage import ITEM_COLUMNS, row_to_item
from clipkeep.utils import escape_like


class ExtensionStore:
    """Sparse per-item side data: OCR text and icon data.

    Each setter only touches its own column, so writing one never clears the other.
    """

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def put_ocr_text(self, item_id: str, ocr_text: str) -> None:
        with self._ctx.db.connect() as conn:
            conn.execute(
                """INSERT INTO extensions (item_id, ocr_text) VALUES (?, ?)
                   ON CONFLICT(item_id) DO UPDATE SET ocr_text = excluded.ocr_text""",
                (item_id, ocr_text),
            )

    def get_ocr_text(self, item_id: str) -> str:
        return self._get_column("ocr_text", item_id)

    def put_icon(self, item_id: str, icon_data: str) -> None:
        with self._ctx.db.connect() as conn:
            conn.execute(
                """INSERT INTO extensions (item_id, icon_data) VALUES (?, ?)
                   ON CONFLICT(item_id) DO UPDATE SET icon_data = excluded.icon_data""",
                (item_id, icon_data),
            )

    def get_icon(self, item_id: str) -> str:
        return self._get_column("icon_data", item_id)

    def search_by_ocr(self, query: str) -> list[ClipboardItem]:
        pattern = f"%{escape_like(query.casefold())}%"
        with self._ctx.db.connect() as conn:
            rows = conn.execute(
                f"""SELECT {ITEM_COLUMNS} FROM items
                    JOIN extensions ON items.id = extensions.item_id
                    WHERE casefold(extensions.ocr_text) LIKE ? ESCAPE '\\'
                    ORDER BY items.timestamp DESC""",
                (pattern,),
            ).fetchall()
        return [row_to_item(r) for r in rows]

    def _get_column(self, column: str, item_id: str) -> str:
        # column is one of two literals above, never caller input
        with self._ctx.db.connect() as conn:
            row = conn.execute(f"SELECT {column} FROM extensions WHERE item_id = ?", (item_id,)).fetchone()
        if row is None or row[0] is None:
            return ""
        return row[0]
