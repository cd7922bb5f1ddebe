"""Small helpers shared by the drive cleaner modules."""

from __future__ import annotations

import structlog

from agents.src.adapters.drive_store_interface import DriveStore
from config.exceptions import StoreAccessError

logger = structlog.get_logger(__name__)

BYTE_UNITS = ["Bytes", "KB", "MB", "GB"]


def get_file_extension(filename: str) -> str:
    """
    Lowercase extension without the dot.

    "report.PDF" -> "pdf", "archive.tar.gz" -> "gz", "README" -> "",
    ".bashrc" -> "" (a leading dot does not start an extension).
    """
    last_dot = filename.rfind(".")
    if last_dot <= 0:
        return ""
    return filename[last_dot + 1 :].lower()


def split_name(filename: str) -> tuple[str, str]:
    """Split into (stem, extension-with-dot) at the last dot."""
    last_dot = filename.rfind(".")
    if last_dot <= 0:
        return filename, ""
    return filename[:last_dot], filename[last_dot:]


def is_extension_excluded(filename: str, excluded_extensions: frozenset[str]) -> bool:
    if not excluded_extensions:
        return False
    return get_file_extension(filename) in excluded_extensions


def is_folder_excluded(
    store: DriveStore,
    folder_id: str,
    excluded_folder_ids: frozenset[str],
) -> bool:
    """
    Check whether a folder or any of its ancestors is excluded.

    Walks the parent chain with a visited set, so a store with parent cycles
    cannot loop forever. Unreachable parents end the walk for that branch.
    """
    if not excluded_folder_ids:
        return False

    pending = [folder_id]
    visited: set[str] = set()

    while pending:
        current = pending.pop()
        if current in visited:
            continue
        visited.add(current)

        if current in excluded_folder_ids:
            return True

        try:
            pending.extend(store.list_parents(current))
        except StoreAccessError as e:
            logger.debug("parent_lookup_failed", folder_id=current, error=str(e))

    return False


def format_bytes(num_bytes: int) -> str:
    """
    Human readable size.

    Returns: "0 Bytes", "512 Bytes", "1.5 KB", "2.25 GB"
    """
    if num_bytes <= 0:
        return "0 Bytes"

    index = 0
    value = float(num_bytes)
    while value >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {BYTE_UNITS[index]}"


def format_duration(seconds: float) -> str:
    """Human readable duration: "2m 30s" or "45s"."""
    total = int(seconds)
    minutes, remaining = divmod(total, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{total}s"
