"""
Per-folder duplicate file cleanup (Phase 2).

Features:
- Age and extension filters applied before any hash lookup
- Content-hash grouping, oldest file of each group always kept
- Duplication window measured from the group's oldest file
- Trash only (reversible), suppressed in dry-run
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from agents.src.adapters.drive_store_interface import DriveStore, FileRecord, FolderRecord
from agents.src.agents.drive_cleaner.models import CleanerConfig, DuplicateFileGroup, FolderStats
from agents.src.agents.drive_cleaner.utils import format_bytes, is_extension_excluded
from agents.src.agents.drive_cleaner.window_policy import is_group_duplicate
from config.exceptions import MetadataError, StoreAccessError

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FileDedupGrouper:
    """
    Find and trash same-content files inside one folder.

    Args:
        store: Remote store
        config: Run configuration
        clock: Returns the current aware datetime (age filter reference)
        log: Optional structlog logger
    """

    def __init__(
        self,
        store: DriveStore,
        config: CleanerConfig,
        clock: Callable[[], datetime] = utc_now,
        log=None,
    ):
        self.store = store
        self.config = config
        self.clock = clock
        self.log = log or logger
        self.groups: list[DuplicateFileGroup] = []

    def analyze(self, folder: FolderRecord) -> FolderStats:
        """
        Deduplicate one folder.

        Raises:
            StoreAccessError: folder listing failed (caller skips the folder)
        """
        stats = FolderStats()
        self.log.info("folder_dedup_started", folder=folder.name, folder_id=folder.id)

        hashed = self._collect_hashes(self.store.list_files(folder.id), stats)
        self.groups = self.build_groups(hashed)

        for group in self.groups:
            self._trash_duplicates(group, stats)

        self.log.info(
            "folder_dedup_completed",
            folder=folder.name,
            files_analyzed=stats.files_analyzed,
            files_skipped=stats.files_skipped,
            files_deleted=stats.files_deleted,
            space_freed=format_bytes(stats.bytes_freed),
            dry_run=self.config.dry_run,
        )
        return stats

    def _collect_hashes(self, files: list[FileRecord], stats: FolderStats) -> dict[str, list[FileRecord]]:
        """Filter visible files, then group the remaining ones by content hash."""
        age_limit = self.config.file_age_filter
        cutoff: Optional[datetime] = self.clock() - age_limit if age_limit else None
        by_hash: dict[str, list[FileRecord]] = {}

        for file in files:
            if file.trashed:
                continue

            if cutoff is not None and file.created_at < cutoff:
                stats.files_skipped += 1
                self.log.debug("file_skipped", file=file.name, reason="older than age filter")
                continue

            if is_extension_excluded(file.name, self.config.excluded_extensions):
                stats.files_skipped += 1
                self.log.debug("file_skipped", file=file.name, reason="excluded extension")
                continue

            content_hash = file.content_hash
            if not content_hash:
                try:
                    content_hash = self.store.get_content_hash(file.id)
                except (MetadataError, StoreAccessError) as e:
                    stats.files_skipped += 1
                    self.log.warning("content_hash_failed", file=file.name, file_id=file.id, error=str(e))
                    continue

            if not content_hash:
                stats.files_skipped += 1
                self.log.debug("file_skipped", file=file.name, reason="no content hash available")
                continue

            by_hash.setdefault(content_hash, []).append(file)
            stats.files_analyzed += 1

        return by_hash

    def build_groups(self, by_hash: dict[str, list[FileRecord]]) -> list[DuplicateFileGroup]:
        """
        Classify each group of 2+ files.

        The oldest file is the keeper; every other file is trashed when it is
        within the window of the keeper, retained otherwise.
        """
        window = self.config.duplication_window
        groups = []

        for content_hash, files in by_hash.items():
            if len(files) < 2:
                continue

            ordered = sorted(files, key=lambda f: (f.created_at, f.id))
            keeper = ordered[0]
            group = DuplicateFileGroup(content_hash=content_hash, files=ordered, keeper=keeper)

            for candidate in ordered[1:]:
                if is_group_duplicate(candidate.created_at, keeper.created_at, window):
                    group.to_trash.append(candidate)
                else:
                    group.retained.append(candidate)

            groups.append(group)

        return groups

    def _trash_duplicates(self, group: DuplicateFileGroup, stats: FolderStats) -> None:
        dry_run = self.config.dry_run
        keeper = group.keeper

        self.log.info(
            "duplicate_group_found",
            content_hash=group.content_hash,
            files=len(group.files),
            kept=keeper.name,
            kept_created=keeper.created_at.isoformat(),
        )

        for duplicate in group.to_trash:
            try:
                if not dry_run:
                    self.store.set_trashed(duplicate.id)
            except StoreAccessError as e:
                stats.errors += 1
                self.log.error("duplicate_trash_failed", file=duplicate.name, file_id=duplicate.id, error=str(e))
                continue

            stats.files_deleted += 1
            stats.bytes_freed += duplicate.size
            self.log.info(
                "duplicate_trashed",
                action="would_trash" if dry_run else "trashed",
                file=duplicate.name,
                created=duplicate.created_at.isoformat(),
                size_bytes=duplicate.size,
            )

        for kept in group.retained:
            self.log.info(
                "duplicate_retained",
                file=kept.name,
                reason=f"outside {self.config.duplication_window_hours:g}h window",
            )


def deduplicate_folder(
    store: DriveStore,
    folder: FolderRecord,
    config: CleanerConfig,
    clock: Callable[[], datetime] = utc_now,
    log=None,
) -> FolderStats:
    """Phase 2 for one folder. See FileDedupGrouper.analyze."""
    return FileDedupGrouper(store, config, clock=clock, log=log).analyze(folder)
