"""
Drive Cleaner - Canonical exception hierarchy.

Source of truth for all Drive Cleaner exceptions.
Store backends raise StoreAccessError / MetadataError; the engine catches them
at folder, group, file and root boundaries and keeps going. Only
ConfigurationError aborts a run.
"""


class DriveCleanerError(Exception):
    """Base exception Drive Cleaner."""


class StoreAccessError(DriveCleanerError):
    """Folder or file unreachable (deleted mid-run, permission revoked)."""

    def __init__(self, item_id: str, message: str = ""):
        self.item_id = item_id
        super().__init__(message or f"Cannot access item {item_id}")


class MetadataError(StoreAccessError):
    """Content hash could not be fetched for a file."""


class ConfigurationError(DriveCleanerError):
    """Required input missing or malformed (e.g. empty root folder list)."""
