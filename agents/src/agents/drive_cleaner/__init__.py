"""
Drive cleaner agent.

Consolidates duplicate content in a hierarchical remote file store.

Modules:
- tree_scanner: Breadth-first folder scan with exclusions
- folder_grouper: Same-name sibling folder grouping
- merge_selector: Surviving folder selection (OLDEST / NEWEST / MOST_FILES)
- folder_merger: Phase 1, folder merge with collision resolution
- file_deduplicator: Phase 2, per-folder content-hash dedup
- window_policy: Duplication window rules
- budget: Cooperative execution budget
- stats: Counter aggregation
- processor: Run orchestration
- config_loader: YAML + environment configuration
- models: Pydantic data models
"""

from agents.src.agents.drive_cleaner.models import (
    CleanerConfig,
    FolderNode,
    FolderStats,
    KeepStrategy,
    MergeStats,
    ProcessingStats,
    RunSummary,
)

__all__ = [
    "CleanerConfig",
    "FolderNode",
    "FolderStats",
    "KeepStrategy",
    "MergeStats",
    "ProcessingStats",
    "RunSummary",
]
