"""Privacy classification of clipboard items and the privacy marker set."""

import logging
import re
from collections.abc import Callable
from enum import Enum

from clipkeep.config import PrivacyFlags
from clipkeep.context import StoreContext
from clipkeep.models import ClipboardItem
from clipkeep.storage import ITEM_COLUMNS, row_to_item

logger = logging.getLogger(__name__)


class PrivacyCategory(Enum):
    """Kinds of sensitive data the detectors recognise."""

    PASSWORD = "password"
    BANK_CARD = "bank_card"
    ID_NUMBER = "id_number"
    PHONE = "phone"


PASSWORD_KEYWORDS = (
    "password",
    "密码",
    "pwd",
    "pass",
    "secret",
    "key",
    "token",
    "credential",
    "login",
    "auth",
    "authentication",
)


def _keyword_patterns(keywords: tuple[str, ...]) -> list[re.Pattern]:
    ascii_words = [kw for kw in keywords if kw.isascii()]
    other_words = [kw for kw in keywords if not kw.isascii()]
    patterns = []
    if ascii_words:
        # Word boundaries only make sense for ASCII; CJK keywords sit inside longer phrases
        alternation = "|".join(re.escape(kw) for kw in ascii_words)
        patterns.append(re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE | re.ASCII))
    if other_words:
        alternation = "|".join(re.escape(kw) for kw in other_words)
        patterns.append(re.compile(alternation, re.IGNORECASE))
    return patterns


PASSWORD_PATTERNS = _keyword_patterns(PASSWORD_KEYWORDS)

BANK_CARD_PATTERN = re.compile(
    r"""
    \b
    (?:
        4\d{3}[\s-]?\d{4}[\s-]?\d{4}(?:[\s-]?\d{4}(?:[\s-]?\d{3})?)?                # Visa: 13, 16, 19
      | (?:5[1-5]|222[1-9]|22[3-9]|2[3-6]|27[0-2])\d{2}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}  # Mastercard
      | 3[47]\d{2}[\s-]?\d{6}[\s-]?\d{5}                                           # Amex: 4-6-5
      | (?:3(?:0[0-5]|[689])|6(?:011|5\d{2}|4[4-9]\d))\d{10,15}                     # Discover, Diners, JCB
    )
    \b
    """,
    re.VERBOSE,
)

ID_NUMBER_PATTERN = re.compile(r"\b\d{15}\b|\b\d{18}\b|\b\d{17}X\b")

PHONE_PATTERN = re.compile(r"\b1[3-9]\d{9}\b")


def is_valid_luhn(card_number: str) -> bool:
    """Check a card number against the Luhn checksum.

    Spaces and hyphens are ignored. Anything else that is not a digit, or an
    empty string, fails.
    """
    digits = re.sub(r"[\s-]", "", card_number)
    if not digits or not (digits.isascii() and digits.isdigit()):
        return False

    total = 0
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def contains_password_hint(notes: str) -> bool:
    return any(pattern.search(notes) for pattern in PASSWORD_PATTERNS)


def contains_bank_card(content: str) -> bool:
    return any(is_valid_luhn(match.group(0)) for match in BANK_CARD_PATTERN.finditer(content))


def contains_id_number(content: str) -> bool:
    return ID_NUMBER_PATTERN.search(content) is not None


def contains_phone_number(content: str) -> bool:
    return PHONE_PATTERN.search(content) is not None


# Password hints are read from notes; every other detector reads content
DETECTORS: dict[PrivacyCategory, Callable[[ClipboardItem], bool]] = {
    PrivacyCategory.PASSWORD: lambda item: contains_password_hint(item.notes),
    PrivacyCategory.BANK_CARD: lambda item: contains_bank_card(item.content),
    PrivacyCategory.ID_NUMBER: lambda item: contains_id_number(item.content),
    PrivacyCategory.PHONE: lambda item: contains_phone_number(item.content),
}


def detect_categories(item: ClipboardItem) -> set[PrivacyCategory]:
    return {category for category, detector in DETECTORS.items() if detector(item)}


def flag_for(flags: PrivacyFlags, category: PrivacyCategory) -> bool:
    return {
        PrivacyCategory.PASSWORD: flags.password,
        PrivacyCategory.BANK_CARD: flags.bank_card,
        PrivacyCategory.ID_NUMBER: flags.id_number,
        PrivacyCategory.PHONE: flags.phone,
    }[category]


class PrivacyStore:
    """The privacy marker set and batch classification over stored text items."""

    def __init__(self, ctx: StoreContext):
        self._ctx = ctx

    def mark(self, item_id: str) -> None:
        with self._ctx.db.connect() as conn:
            conn.execute("INSERT OR IGNORE INTO privacy_marks (item_id) VALUES (?)", (item_id,))

    def unmark(self, item_id: str) -> int:
        with self._ctx.db.connect() as conn:
            return conn.execute("DELETE FROM privacy_marks WHERE item_id = ?", (item_id,)).rowcount

    def is_private(self, item_id: str) -> bool:
        with self._ctx.db.connect() as conn:
            row = conn.execute("SELECT 1 FROM privacy_marks WHERE item_id = ?", (item_id,)).fetchone()
        return row is not None

    def list_private(self) -> list[ClipboardItem]:
        with self._ctx.db.connect() as conn:
            rows = conn.execute(
                f"""SELECT {ITEM_COLUMNS} FROM items
                    JOIN privacy_marks ON items.id = privacy_marks.item_id
                    ORDER BY items.timestamp DESC"""
            ).fetchall()
        return [row_to_item(r) for r in rows]

    def clear_all(self) -> int:
        with self._ctx.db.connect() as conn:
            return conn.execute("DELETE FROM privacy_marks").rowcount

    def mark_passwords(self, to_add: bool) -> int:
        return self._mark_matching(PrivacyCategory.PASSWORD, to_add)

    def mark_bank_cards(self, to_add: bool) -> int:
        return self._mark_matching(PrivacyCategory.BANK_CARD, to_add)

    def mark_id_numbers(self, to_add: bool) -> int:
        return self._mark_matching(PrivacyCategory.ID_NUMBER, to_add)

    def mark_phone_numbers(self, to_add: bool) -> int:
        return self._mark_matching(PrivacyCategory.PHONE, to_add)

    def auto_mark(self, flags: PrivacyFlags) -> int:
        """Run all four detectors, each adding or removing marks per its flag.

        Returns the sum of per-detector match counts, so an item matched by two
        detectors is counted twice.
        """
        total = 0
        for category in PrivacyCategory:
            total += self._mark_matching(category, flag_for(flags, category))
        logger.info("Privacy auto-mark matched %d item(s)", total)
        return total

    def check_and_mark_single_item(self, item: ClipboardItem, flags: PrivacyFlags) -> bool:
        """Classify one item and apply each matching detector's action.

        Detectors that do not match leave the marker as it was. Returns whether
        the item is private afterwards.
        """
        matched = detect_categories(item)
        with self._ctx.db.connect() as conn:
            for category in PrivacyCategory:
                if category in matched:
                    self._apply(conn, item.id, flag_for(flags, category))
            row = conn.execute("SELECT 1 FROM privacy_marks WHERE item_id = ?", (item.id,)).fetchone()
        return row is not None

    def _mark_matching(self, category: PrivacyCategory, to_add: bool) -> int:
        detector = DETECTORS[category]
        count = 0
        with self._ctx.db.connect() as conn:
            rows = conn.execute(f"SELECT {ITEM_COLUMNS} FROM items WHERE item_type = 'text'").fetchall()
            for row in rows:
                item = row_to_item(row)
                if detector(item):
                    self._apply(conn, item.id, to_add)
                    count += 1
        return count

    @staticmethod
    def _apply(conn, item_id: str, to_add: bool) -> None:
        if to_add:
            conn.execute("INSERT OR IGNORE INTO privacy_marks (item_id) VALUES (?)", (item_id,))
        else:
            conn.execute("DELETE FROM privacy_marks WHERE item_id = ?", (item_id,))
