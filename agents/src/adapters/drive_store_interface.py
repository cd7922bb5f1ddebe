#!/usr/bin/env python3
"""
Drive Cleaner - Abstract DriveStore interface for hierarchical remote file stores.

The decision engine never talks to a remote API directly. Every listing,
metadata lookup and mutation goes through this narrow capability set, so the
backend (Google Drive, a WebDAV share, an in-memory fake for tests) can be
swapped without touching the engine.

Adding a backend:
    1. Create XxxDriveStore(DriveStore) implementing every @abstractmethod
    2. Raise StoreAccessError when an item is unreachable (deleted, no permission)
    3. Raise MetadataError when a content hash lookup fails
    4. Tests: run the drive_cleaner unit suite against the new backend

Usage:
    store = XxxDriveStore(...)
    for folder in store.list_folders(root_id):
        ...

Calls are synchronous and issued strictly sequentially by the engine.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Shared records (identical across backends)
# ============================================================


class FolderRecord(BaseModel):
    """Folder as listed by the store."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: datetime
    modified_at: datetime
    trashed: bool = False


class FileRecord(BaseModel):
    """
    File as listed by the store.

    content_hash is optional: listings may omit it (it is fetched lazily with
    get_content_hash) and native formats the store cannot hash never have one.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_at: datetime
    size: int = Field(default=0, ge=0)
    content_hash: Optional[str] = None
    trashed: bool = False


# ============================================================
# Abstract interface
# ============================================================


class DriveStore(ABC):
    """
    Abstract interface for hierarchical remote file stores.

    Every method may raise StoreAccessError. Mutations are reversible only:
    there is no permanent-delete method.
    """

    # ============================================================
    # Folder operations
    # ============================================================

    @abstractmethod
    def get_folder(self, folder_id: str) -> FolderRecord:
        """
        Fetch one folder.

        Raises:
            StoreAccessError: folder missing or not accessible
        """

    @abstractmethod
    def list_folders(self, folder_id: str) -> list[FolderRecord]:
        """List non-trashed child folders. Order is unspecified."""

    @abstractmethod
    def list_parents(self, item_id: str) -> list[str]:
        """Return identities of the parent folders of a file or folder."""

    # ============================================================
    # File operations
    # ============================================================

    @abstractmethod
    def list_files(self, folder_id: str) -> list[FileRecord]:
        """List child files, trashed flag included. Order is unspecified."""

    def find_files_by_name(self, folder_id: str, name: str) -> list[FileRecord]:
        """
        List non-trashed files named exactly `name` in a folder.

        Backends with a server-side name query should override this.
        """
        return [
            f for f in self.list_files(folder_id) if f.name == name and not f.trashed
        ]

    @abstractmethod
    def get_content_hash(self, file_id: str) -> Optional[str]:
        """
        Fetch the content hash of a file.

        Returns:
            Hex digest, or None when the store cannot hash the format

        Raises:
            MetadataError: lookup failed
        """

    # ============================================================
    # Mutations
    # ============================================================

    @abstractmethod
    def move_file(self, file_id: str, folder_id: str) -> None:
        """Move a file into folder_id, keeping identity, content and metadata."""

    @abstractmethod
    def rename_file(self, file_id: str, new_name: str) -> None:
        """Rename a file in place."""

    @abstractmethod
    def set_trashed(self, item_id: str, trashed: bool = True) -> None:
        """Move a file or folder to (or out of) the trash. Reversible."""
