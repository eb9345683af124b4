import logging
import shutil
import time
from pathlib import Path

from clipkeep.config import DATA_DIR, FILES_DIR
from clipkeep.models import ItemType

logger = logging.getLogger(__name__)

RELATIVE_FILE_PREFIXES = ("./files/", "files/")


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_separators(path: str) -> str:
    return path.replace("\\", "/")


def is_relative_resource(content: str) -> bool:
    return normalize_separators(content).startswith(RELATIVE_FILE_PREFIXES)


def resolve_resource_path(content: str, storage_root: Path) -> Path:
    """Map an item's content to the file or directory it refers to.

    Paths under the storage root are stored relative to it as ``files/<name>``
    (either separator style); everything else is taken as-is.
    """
    normalized = normalize_separators(content)
    for prefix in RELATIVE_FILE_PREFIXES:
        if normalized.startswith(prefix):
            return storage_root / "files" / normalized[len(prefix):]
    return Path(content)


def delete_resource(path: Path, item_type: ItemType, item_id: str) -> bool:
    """Best-effort removal of the resource backing an item.

    Returns True when something was removed. Failures are logged and never raised.
    """
    if not path.exists():
        logger.info("Resource for item %s not found, skipping: %s", item_id, path)
        return False
    try:
        if item_type == ItemType.FOLDER or path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        logger.warning("Failed to delete resource for item %s at %s: %s", item_id, path, exc)
        return False
    logger.info("Deleted resource for item %s: %s", item_id, path)
    return True


def escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    FILES_DIR.mkdir(parents=True, exist_ok=True)
