"""
Duplicate folder merging (Phase 1).

Automated uploaders sometimes create a second "Acme" folder next to the first
one when they fail to find it. This module finds same-name sibling folders,
keeps one of them and moves the files of the others into it.

Features:
- Name collisions resolved by content hash + duplication window
- Colliding different files renamed "name (2).ext", "name (3).ext", ...
- Emptied source folders trashed (never permanently deleted)
- Dry-run: every decision and log line, no mutating store call
"""

from __future__ import annotations

from typing import Optional

import structlog

from agents.src.adapters.drive_store_interface import DriveStore, FileRecord, FolderRecord
from agents.src.agents.drive_cleaner.budget import ExecutionBudget
from agents.src.agents.drive_cleaner.folder_grouper import (
    actionable_groups,
    group_duplicate_folders,
)
from agents.src.agents.drive_cleaner.merge_selector import FolderMergeSelector
from agents.src.agents.drive_cleaner.models import (
    CleanerConfig,
    ConflictResolution,
    FolderNode,
    MergeDecision,
    MergeResult,
    MergeStats,
)
from agents.src.agents.drive_cleaner.stats import StatsAggregator
from agents.src.agents.drive_cleaner.tree_scanner import FolderTreeScanner
from agents.src.agents.drive_cleaner.utils import is_folder_excluded, split_name
from agents.src.agents.drive_cleaner.window_policy import resolve_collision
from config.exceptions import MetadataError, StoreAccessError

logger = structlog.get_logger(__name__)


class FolderMergeExecutor:
    """
    Move files from source folders into a target folder.

    Args:
        store: Remote store
        config: Run configuration (window, dry-run)
        log: Optional structlog logger
    """

    def __init__(self, store: DriveStore, config: CleanerConfig, log=None):
        self.store = store
        self.config = config
        self.log = log or logger
        # dry-run only: target folder ID -> name -> file that would hold that name
        self._planned: dict[str, dict[str, FileRecord]] = {}

    def merge(self, sources: list[FolderNode], target: FolderNode) -> MergeResult:
        """
        Merge every source into target, in order, then trash emptied sources.

        Returns:
            MergeResult with moved / duplicate / renamed / removed counts
        """
        result = MergeResult()
        self._planned = {}

        for source in sources:
            self.log.info("folder_merge_source", source=source.path, target=target.path)

            fully_handled = self._merge_files(source, target, result)
            self._remove_if_empty(source, fully_handled, result)
            result.folders_merged += 1

        return result

    def _merge_files(self, source: FolderNode, target: FolderNode, result: MergeResult) -> bool:
        """Process every visible file of source. Returns True if none failed."""
        try:
            files = self.store.list_files(source.id)
        except StoreAccessError as e:
            result.errors += 1
            self.log.warning("folder_merge_list_failed", folder_id=source.id, error=str(e))
            return False

        fully_handled = True
        for incoming in files:
            if incoming.trashed:
                continue

            decision = self.merge_file(incoming, target, result)
            if decision is MergeDecision.ERROR:
                fully_handled = False

        return fully_handled

    def merge_file(self, incoming: FileRecord, target: FolderNode, result: MergeResult) -> MergeDecision:
        """
        Move one file into target, resolving a name collision if any.

        Store failures are logged and reported as MergeDecision.ERROR.
        """
        dry_run = self.config.dry_run

        try:
            existing_files = self._files_named(target.id, incoming.name)

            if not existing_files:
                if not dry_run:
                    self.store.move_file(incoming.id, target.id)
                self._plan(target.id, incoming.name, incoming)
                result.files_moved += 1
                self.log.info(
                    "merge_file_moved",
                    action="would_move" if dry_run else "moved",
                    file=incoming.name,
                )
                return MergeDecision.MOVE

            existing = existing_files[0]
            conflict = self.resolve_conflict(existing, incoming)

            if conflict.decision is MergeDecision.KEEP_EXISTING:
                if not dry_run:
                    self.store.set_trashed(incoming.id)
                result.duplicates_handled += 1
                self.log.info(
                    "merge_duplicate_trashed",
                    action="would_trash" if dry_run else "trashed",
                    file=incoming.name,
                    reason=conflict.reason,
                )

            elif conflict.decision is MergeDecision.KEEP_INCOMING:
                # move before trashing, so a failed move leaves the existing copy visible
                if not dry_run:
                    self.store.move_file(incoming.id, target.id)
                    self.store.set_trashed(existing.id)
                self._plan(target.id, incoming.name, incoming)
                result.duplicates_handled += 1
                self.log.info(
                    "merge_existing_replaced",
                    action="would_replace" if dry_run else "replaced",
                    file=incoming.name,
                    reason=conflict.reason,
                )

            elif conflict.decision is MergeDecision.RENAME_INCOMING:
                new_name = self.generate_unique_name(incoming.name, target.id)
                if not dry_run:
                    self.store.rename_file(incoming.id, new_name)
                    self.store.move_file(incoming.id, target.id)
                self._plan(target.id, new_name, incoming)
                result.files_renamed += 1
                self.log.info(
                    "merge_file_renamed",
                    action="would_rename" if dry_run else "renamed",
                    file=incoming.name,
                    new_name=new_name,
                    reason=conflict.reason,
                )

            return conflict.decision

        except StoreAccessError as e:
            result.errors += 1
            self.log.error(
                "merge_file_failed",
                file=incoming.name,
                file_id=incoming.id,
                error=str(e),
            )
            return MergeDecision.ERROR

    def resolve_conflict(self, existing: FileRecord, incoming: FileRecord) -> ConflictResolution:
        """Compare two same-named files and decide which one to keep."""
        existing_hash = self._content_hash(existing)
        incoming_hash = self._content_hash(incoming)

        decision, reason = resolve_collision(
            existing_hash,
            incoming_hash,
            existing.created_at,
            incoming.created_at,
            self.config.duplication_window,
        )

        return ConflictResolution(
            existing=existing,
            incoming=incoming,
            existing_hash=existing_hash,
            incoming_hash=incoming_hash,
            decision=decision,
            reason=reason,
        )

    def generate_unique_name(self, name: str, folder_id: str) -> str:
        """
        Find the first free "stem (N).ext" name in a folder, N starting at 2.

        Each candidate is checked against the folder's current listing, plus,
        in dry-run, the names earlier files of this merge would have taken.
        """
        stem, ext = split_name(name)
        counter = 2
        candidate = f"{stem} ({counter}){ext}"

        while self._files_named(folder_id, candidate):
            counter += 1
            candidate = f"{stem} ({counter}){ext}"

        return candidate

    def _files_named(self, folder_id: str, name: str) -> list[FileRecord]:
        """Files holding `name` in a folder, planned dry-run holder first."""
        files = self.store.find_files_by_name(folder_id, name)
        planned = self._planned.get(folder_id, {}).get(name)
        if planned is not None:
            files = [planned] + [f for f in files if f.id != planned.id]
        return files

    def _plan(self, folder_id: str, name: str, file: FileRecord) -> None:
        """Record, in dry-run, that `file` would now hold `name` in the folder."""
        if self.config.dry_run:
            self._planned.setdefault(folder_id, {})[name] = file

    def _content_hash(self, file: FileRecord) -> Optional[str]:
        """Fetch a content hash; failures count as "no hash"."""
        if file.content_hash:
            return file.content_hash
        try:
            return self.store.get_content_hash(file.id)
        except (MetadataError, StoreAccessError) as e:
            self.log.warning("content_hash_failed", file=file.name, file_id=file.id, error=str(e))
            return None

    def _remove_if_empty(self, source: FolderNode, fully_handled: bool, result: MergeResult) -> None:
        """
        Trash source when it holds no file and no subfolder.

        A source with empty subfolders is kept. In dry-run the files were not
        really moved, so emptiness is predicted from the merge outcome.
        """
        dry_run = self.config.dry_run

        try:
            has_subfolders = bool(self.store.list_folders(source.id))
            if dry_run:
                is_empty = fully_handled and not has_subfolders
            else:
                has_files = any(not f.trashed for f in self.store.list_files(source.id))
                is_empty = not has_files and not has_subfolders

            if not is_empty:
                self.log.info("merge_source_not_empty", source=source.path)
                return

            if not dry_run:
                self.store.set_trashed(source.id)
            result.empty_folders_deleted += 1
            self.log.info(
                "merge_source_trashed",
                action="would_trash" if dry_run else "trashed",
                source=source.path,
            )
        except StoreAccessError as e:
            result.errors += 1
            self.log.warning("merge_source_removal_failed", folder_id=source.id, error=str(e))


def merge_duplicate_folders(
    store: DriveStore,
    root: FolderRecord,
    config: CleanerConfig,
    budget: ExecutionBudget,
    log=None,
) -> MergeStats:
    """
    Phase 1: merge same-name sibling folders below root.

    Steps:
    1. Scan the folder tree (breadth-first, exclusions, recursion toggle)
    2. Group folders by (parent, lowercased name)
    3. For each group of 2+: select the target, merge the sources into it

    The budget is checked before each group; a started group always finishes.
    A root excluded directly or through an ancestor is skipped entirely.
    """
    log = log or logger
    aggregator = StatsAggregator()
    stats = aggregator.merge

    if is_folder_excluded(store, root.id, config.excluded_folder_ids):
        log.info("folder_excluded", folder=root.name, folder_id=root.id, phase="merge")
        return stats

    log.info("folder_merge_started", root=root.name, root_id=root.id)

    scanner = FolderTreeScanner(store, log=log)
    nodes = scanner.scan(
        root,
        excluded_ids=config.excluded_folder_ids,
        recursive=config.merge_folders_recursive,
    )
    stats.folders_scanned = len(nodes)
    stats.errors += len(scanner.errors)

    groups = actionable_groups(group_duplicate_folders(nodes))
    stats.duplicate_groups_found = len(groups)

    log.info(
        "folder_merge_scanned",
        folders_scanned=stats.folders_scanned,
        duplicate_groups=stats.duplicate_groups_found,
    )

    if not groups:
        log.info("folder_merge_no_duplicates", root=root.name)
        return stats

    selector = FolderMergeSelector(store)
    executor = FolderMergeExecutor(store, config, log=log)

    for folders in groups.values():
        if not budget.within_budget():
            stats.budget_exhausted = True
            log.info("folder_merge_timeout", root=root.name)
            break

        target, sources = selector.split(folders, config.merge_keep_folder_strategy)
        log.info(
            "folder_merge_group",
            name=target.name,
            instances=len(folders),
            target=target.path,
            strategy=config.merge_keep_folder_strategy.value,
        )

        aggregator.add_merge_result(executor.merge(sources, target))

    log.info(
        "folder_merge_completed",
        root=root.name,
        folders_merged=stats.folders_merged,
        files_moved=stats.files_moved,
        duplicates_handled=stats.duplicates_handled,
        files_renamed=stats.files_renamed,
        empty_folders_deleted=stats.empty_folders_deleted,
    )
    return stats
