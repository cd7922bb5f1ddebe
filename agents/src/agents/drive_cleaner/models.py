"""
Pydantic models for the drive cleaner agent.

Models:
- CleanerConfig: Immutable run configuration (windows, exclusions, merge options)
- FolderNode: Folder discovered by a tree scan
- DuplicateFileGroup: Files of one folder sharing a content hash
- ConflictResolution: Outcome of a same-name collision during a merge
- FolderStats / ProcessingStats / MergeStats / RunSummary: Counters
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agents.src.adapters.drive_store_interface import FileRecord, FolderRecord

__all__ = [
    "CleanerConfig",
    "ConflictResolution",
    "DuplicateFileGroup",
    "FileRecord",
    "FolderNode",
    "FolderRecord",
    "FolderSortMode",
    "FolderStats",
    "KeepStrategy",
    "MergeDecision",
    "MergeStats",
    "MergeResult",
    "ProcessingStats",
    "RunSummary",
]


def _require_collection(field: str, value):
    """Return value unchanged if it is a list, tuple or set, else raise ValueError."""
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"{field} must be a list, got {type(value).__name__}")
    return value


class FolderSortMode(str, Enum):
    """Order in which Phase 2 visits the subfolders of a root."""

    LAST_UPDATED = "LAST_UPDATED"
    RANDOM = "RANDOM"


class KeepStrategy(str, Enum):
    """Which instance of a duplicate folder group survives a merge."""

    OLDEST = "OLDEST"
    NEWEST = "NEWEST"
    MOST_FILES = "MOST_FILES"


class MergeDecision(str, Enum):
    """Resolution of one incoming file during a folder merge."""

    MOVE = "move"
    KEEP_EXISTING = "keep_existing"
    KEEP_INCOMING = "keep_incoming"
    RENAME_INCOMING = "rename_incoming"
    ERROR = "error"


class CleanerConfig(BaseModel):
    """Configuration for a drive cleaner run."""

    model_config = ConfigDict(frozen=True)

    root_folder_ids: list[str] = Field(
        default_factory=list,
        description="Root folders to process, in order",
    )
    duplication_window_hours: float = Field(
        default=24.0,
        gt=0,
        description="Max distance from the earliest copy for a same-content file to be a duplicate",
    )
    max_execution_time_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Stop scheduling new folders once exceeded",
    )
    excluded_folder_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="Folder IDs whose whole subtree is skipped",
    )
    excluded_extensions: frozenset[str] = Field(
        default_factory=frozenset,
        description="File extensions never hashed nor trashed (lowercased, no dot)",
    )
    folder_sort_mode: FolderSortMode = Field(
        default=FolderSortMode.LAST_UPDATED,
        description="Phase 2 visit order: most recently updated first, or random",
    )
    file_age_filter_days: float = Field(
        default=0.0,
        ge=0,
        description="Ignore files created more than N days ago (0 = disabled)",
    )
    merge_folders_enabled: bool = Field(default=False)
    merge_folders_recursive: bool = Field(default=True)
    merge_keep_folder_strategy: KeepStrategy = Field(default=KeepStrategy.OLDEST)
    dry_run: bool = Field(default=True)

    @field_validator("root_folder_ids", "excluded_folder_ids", mode="before")
    @classmethod
    def require_id_list(cls, v, info):
        """Reject a bare string or mapping where a list of folder IDs is expected."""
        if v is None and info.field_name == "excluded_folder_ids":
            return frozenset()
        return _require_collection(info.field_name, v)

    @field_validator("root_folder_ids")
    @classmethod
    def validate_root_ids(cls, v: list[str]) -> list[str]:
        """Reject blank folder IDs."""
        for folder_id in v:
            if not folder_id or not folder_id.strip():
                raise ValueError("root_folder_ids cannot contain empty IDs")
        return v

    @field_validator("excluded_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v):
        """Lowercase extensions and strip a leading dot."""
        if v is None:
            return frozenset()
        extensions = _require_collection("excluded_extensions", v)
        for ext in extensions:
            if not isinstance(ext, str):
                raise ValueError(f"excluded_extensions must contain strings, got {ext!r}")
        return frozenset(ext.strip().lower().lstrip(".") for ext in extensions if ext.strip())

    @property
    def duplication_window(self) -> timedelta:
        return timedelta(hours=self.duplication_window_hours)

    @property
    def max_execution_time(self) -> timedelta:
        return timedelta(seconds=self.max_execution_time_seconds)

    @property
    def file_age_filter(self) -> Optional[timedelta]:
        if self.file_age_filter_days <= 0:
            return None
        return timedelta(days=self.file_age_filter_days)


class FolderNode(BaseModel):
    """Folder discovered by a tree scan. Path and depth are for logs only."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_id: str
    created_at: datetime
    modified_at: datetime
    depth: int = Field(ge=1)
    path: str


class DuplicateFileGroup(BaseModel):
    """Files of one folder sharing the same content hash, oldest first."""

    content_hash: str
    files: list[FileRecord] = Field(default_factory=list)
    keeper: Optional[FileRecord] = None
    to_trash: list[FileRecord] = Field(default_factory=list)
    retained: list[FileRecord] = Field(default_factory=list)


class ConflictResolution(BaseModel):
    """Outcome of comparing an incoming file with a same-named target file."""

    existing: FileRecord
    incoming: FileRecord
    existing_hash: Optional[str] = None
    incoming_hash: Optional[str] = None
    decision: MergeDecision
    reason: str


class FolderStats(BaseModel):
    """Phase 2 counters for one folder."""

    files_analyzed: int = 0
    files_skipped: int = 0
    files_deleted: int = 0
    bytes_freed: int = 0
    errors: int = 0


class ProcessingStats(BaseModel):
    """Phase 2 counters for one root, or all roots."""

    folders_processed: int = 0
    total_folders: int = 0
    files_analyzed: int = 0
    files_skipped: int = 0
    files_deleted: int = 0
    bytes_freed: int = 0
    errors: int = 0
    budget_exhausted: bool = False


class MergeResult(BaseModel):
    """Counters for merging the sources of one duplicate group into its target."""

    folders_merged: int = 0
    files_moved: int = 0
    duplicates_handled: int = 0
    files_renamed: int = 0
    empty_folders_deleted: int = 0
    errors: int = 0


class MergeStats(BaseModel):
    """Phase 1 counters for one root, or all roots."""

    folders_scanned: int = 0
    duplicate_groups_found: int = 0
    folders_merged: int = 0
    files_moved: int = 0
    duplicates_handled: int = 0
    files_renamed: int = 0
    empty_folders_deleted: int = 0
    errors: int = 0
    budget_exhausted: bool = False


class RunSummary(BaseModel):
    """Final result of one invocation."""

    dry_run: bool
    roots_total: int = 0
    roots_processed: int = 0
    roots_failed: int = 0
    duration_seconds: float = 0.0
    merge: MergeStats = Field(default_factory=MergeStats)
    processing: ProcessingStats = Field(default_factory=ProcessingStats)

    @property
    def budget_exhausted(self) -> bool:
        return self.merge.budget_exhausted or self.processing.budget_exhausted
