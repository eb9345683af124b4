import os
from dataclasses import dataclass, field
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPKEEP_DATA_DIR", Path.home() / ".local" / "share" / "clipkeep"))
DB_PATH = DATA_DIR / "clipkeep.db"
FILES_DIR = DATA_DIR / "files"
LOG_PATH = DATA_DIR / "clipkeep.log"

DEFAULT_RETENTION_DAYS = 30
DEFAULT_MAX_HISTORY_ITEMS = 500  # 0 disables count-based eviction
MS_PER_DAY = 86_400_000


def _parse_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(low, min(high, value))


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "off", "no", ""}


@dataclass(frozen=True)
class RetentionSettings:
    retention_days: int = DEFAULT_RETENTION_DAYS
    max_history_items: int = DEFAULT_MAX_HISTORY_ITEMS


@dataclass(frozen=True)
class PrivacyFlags:
    """Which detector categories add (True) or remove (False) the privacy marker."""

    password: bool = True
    bank_card: bool = True
    id_number: bool = True
    phone: bool = True


@dataclass(frozen=True)
class Settings:
    retention: RetentionSettings = field(default_factory=RetentionSettings)
    privacy: PrivacyFlags = field(default_factory=PrivacyFlags)


def load_retention_settings() -> RetentionSettings:
    return RetentionSettings(
        retention_days=_parse_int("CLIPKEEP_RETENTION_DAYS", DEFAULT_RETENTION_DAYS, 0, 3650),
        max_history_items=_parse_int("CLIPKEEP_MAX_HISTORY_ITEMS", DEFAULT_MAX_HISTORY_ITEMS, 0, 100_000),
    )


def load_privacy_flags() -> PrivacyFlags:
    return PrivacyFlags(
        password=_parse_bool("CLIPKEEP_FILTER_PASSWORDS", True),
        bank_card=_parse_bool("CLIPKEEP_FILTER_BANK_CARDS", True),
        id_number=_parse_bool("CLIPKEEP_FILTER_ID_NUMBERS", True),
        phone=_parse_bool("CLIPKEEP_FILTER_PHONE_NUMBERS", True),
    )


def load_settings() -> Settings:
    return Settings(retention=load_retention_settings(), privacy=load_privacy_flags())
