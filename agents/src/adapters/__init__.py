"""Drive Cleaner - Adapters Package

Adapters for external components (remote file stores).
The adapter pattern lets the engine swap store providers by changing one file.

Available adapters:
    - drive_store_interface.DriveStore: abstract remote file store
"""

from agents.src.adapters.drive_store_interface import DriveStore, FileRecord, FolderRecord

__all__ = [
    "DriveStore",
    "FileRecord",
    "FolderRecord",
]
