"""
Counter aggregation.

Folder stats roll up into root stats, root stats into the run totals. Integer
counters are summed, boolean flags are OR-ed. No decisions happen here.
"""

from __future__ import annotations

from pydantic import BaseModel

from agents.src.agents.drive_cleaner.models import (
    FolderStats,
    MergeResult,
    MergeStats,
    ProcessingStats,
)


def accumulate(target: BaseModel, source: BaseModel) -> None:
    """Add every counter of `source` to the same-named counter of `target`."""
    target_fields = type(target).model_fields
    for name in type(source).model_fields:
        if name not in target_fields:
            continue

        value = getattr(source, name)
        current = getattr(target, name)
        if isinstance(value, bool):
            setattr(target, name, current or value)
        elif isinstance(value, int):
            setattr(target, name, current + value)


class StatsAggregator:
    """Running totals for one root or for a whole run."""

    def __init__(self):
        self.processing = ProcessingStats()
        self.merge = MergeStats()

    def add_folder(self, folder_stats: FolderStats) -> None:
        accumulate(self.processing, folder_stats)
        self.processing.folders_processed += 1

    def add_processing(self, stats: ProcessingStats) -> None:
        accumulate(self.processing, stats)

    def add_merge_result(self, result: MergeResult) -> None:
        accumulate(self.merge, result)

    def add_merge_stats(self, stats: MergeStats) -> None:
        accumulate(self.merge, stats)
