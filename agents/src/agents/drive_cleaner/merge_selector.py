"""
Target selection for duplicate folder groups.

Selects which folder instance survives a merge using the configured strategy:
- OLDEST: earliest creation time
- NEWEST: latest modification time
- MOST_FILES: most files, counted through the whole subtree

Ties always go to the first folder in input order.
"""

from __future__ import annotations

from typing import Callable

import structlog

from agents.src.adapters.drive_store_interface import DriveStore
from agents.src.agents.drive_cleaner.models import FolderNode, KeepStrategy
from config.exceptions import StoreAccessError

logger = structlog.get_logger(__name__)


def count_files_recursive(store: DriveStore, folder_id: str) -> int:
    """
    Count non-trashed files in a folder and all its descendants.

    Independent of the merge recursion toggle. Unreachable subfolders count
    as zero.
    """
    count = 0
    pending = [folder_id]
    visited: set[str] = set()

    while pending:
        current = pending.pop()
        if current in visited:
            continue
        visited.add(current)

        try:
            count += sum(1 for f in store.list_files(current) if not f.trashed)
            pending.extend(sub.id for sub in store.list_folders(current) if not sub.trashed)
        except StoreAccessError as e:
            logger.warning("file_count_failed", folder_id=current, error=str(e))

    return count


class FolderMergeSelector:
    """Pick the surviving folder of a duplicate group."""

    def __init__(self, store: DriveStore):
        self.store = store
        self._strategies: dict[KeepStrategy, Callable[[list[FolderNode]], FolderNode]] = {
            KeepStrategy.OLDEST: self._select_oldest,
            KeepStrategy.NEWEST: self._select_newest,
            KeepStrategy.MOST_FILES: self._select_most_files,
        }

    def select_target(self, group: list[FolderNode], strategy: KeepStrategy) -> FolderNode:
        """
        Select the folder to keep.

        Args:
            group: Duplicate folders (at least one)
            strategy: Keep strategy

        Returns:
            The surviving FolderNode; every other member is a merge source
        """
        if not group:
            raise ValueError("Cannot select a target from an empty group")
        return self._strategies[KeepStrategy(strategy)](group)

    def split(self, group: list[FolderNode], strategy: KeepStrategy) -> tuple[FolderNode, list[FolderNode]]:
        """Return (target, sources) with sources in input order."""
        target = self.select_target(group, strategy)
        return target, [f for f in group if f.id != target.id]

    @staticmethod
    def _select_oldest(group: list[FolderNode]) -> FolderNode:
        best = group[0]
        for folder in group[1:]:
            if folder.created_at < best.created_at:
                best = folder
        return best

    @staticmethod
    def _select_newest(group: list[FolderNode]) -> FolderNode:
        best = group[0]
        for folder in group[1:]:
            if folder.modified_at > best.modified_at:
                best = folder
        return best

    def _select_most_files(self, group: list[FolderNode]) -> FolderNode:
        counts = [(folder, count_files_recursive(self.store, folder.id)) for folder in group]
        best, best_count = counts[0]
        for folder, file_count in counts[1:]:
            if file_count > best_count:
                best, best_count = folder, file_count

        logger.debug(
            "most_files_counts",
            counts={folder.path: file_count for folder, file_count in counts},
            selected=best.id,
        )
        return best
