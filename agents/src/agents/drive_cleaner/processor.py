"""
Run orchestration.

Entry points:
- process_root: Phase 2 over the immediate subfolders of one root
- clean_drive: full invocation (Phase 1 over every root, then Phase 2 over
  every root) under one shared execution budget

Usage:
    from agents.src.agents.drive_cleaner.processor import clean_drive

    summary = clean_drive(store, config)
    print(summary.processing.files_deleted)
"""

from __future__ import annotations

import random
import time
from datetime import datetime
from typing import Callable, Optional

import structlog

from agents.src.adapters.drive_store_interface import DriveStore, FolderRecord
from agents.src.agents.drive_cleaner.budget import ExecutionBudget
from agents.src.agents.drive_cleaner.config_loader import describe_config
from agents.src.agents.drive_cleaner.file_deduplicator import FileDedupGrouper, utc_now
from agents.src.agents.drive_cleaner.folder_merger import merge_duplicate_folders
from agents.src.agents.drive_cleaner.models import (
    CleanerConfig,
    FolderSortMode,
    ProcessingStats,
    RunSummary,
)
from agents.src.agents.drive_cleaner.stats import StatsAggregator
from agents.src.agents.drive_cleaner.utils import (
    format_bytes,
    format_duration,
    is_folder_excluded,
)
from config.exceptions import ConfigurationError, StoreAccessError

logger = structlog.get_logger(__name__)


def order_folders(
    folders: list[FolderRecord],
    mode: FolderSortMode,
    rng: Optional[random.Random] = None,
) -> list[FolderRecord]:
    """
    Order Phase 2 folders: most recently updated first, or shuffled.

    Folders are first sorted by ID so equal timestamps keep a stable order.
    """
    ordered = sorted(folders, key=lambda f: f.id)
    if mode is FolderSortMode.RANDOM:
        (rng or random.Random()).shuffle(ordered)
        return ordered
    return sorted(ordered, key=lambda f: f.modified_at, reverse=True)


def process_root(
    store: DriveStore,
    root: FolderRecord,
    config: CleanerConfig,
    budget: ExecutionBudget,
    clock: Callable[[], datetime] = utc_now,
    rng: Optional[random.Random] = None,
    log=None,
) -> ProcessingStats:
    """
    Phase 2 for one root: deduplicate each immediate subfolder.

    Raises:
        StoreAccessError: root listing failed
    """
    log = log or logger
    log.info("root_processing_started", root=root.name, root_id=root.id)

    folders = []
    for folder in store.list_folders(root.id):
        if folder.trashed:
            continue
        if is_folder_excluded(store, folder.id, config.excluded_folder_ids):
            log.info("folder_excluded", folder=folder.name, folder_id=folder.id)
            continue
        folders.append(folder)

    folders = order_folders(folders, config.folder_sort_mode, rng)
    log.info(
        "root_folders_listed",
        root=root.name,
        folders=len(folders),
        sort_mode=config.folder_sort_mode.value,
    )

    aggregator = StatsAggregator()
    stats = aggregator.processing
    stats.total_folders = len(folders)
    grouper = FileDedupGrouper(store, config, clock=clock, log=log)

    for folder in folders:
        if not budget.within_budget():
            stats.budget_exhausted = True
            log.info(
                "root_processing_timeout",
                root=root.name,
                folders_processed=stats.folders_processed,
                total_folders=stats.total_folders,
            )
            break

        try:
            aggregator.add_folder(grouper.analyze(folder))
        except StoreAccessError as e:
            stats.errors += 1
            log.error("folder_processing_failed", folder=folder.name, folder_id=folder.id, error=str(e))

    log.info(
        "root_processing_completed",
        root=root.name,
        folders_processed=stats.folders_processed,
        total_folders=stats.total_folders,
    )
    return stats


def clean_drive(
    store: DriveStore,
    config: CleanerConfig,
    clock: Callable[[], datetime] = utc_now,
    monotonic: Callable[[], float] = time.monotonic,
    rng: Optional[random.Random] = None,
    log=None,
) -> RunSummary:
    """
    Run one full invocation.

    Steps:
    1. Validate input (ConfigurationError before any store call)
    2. Phase 1: merge duplicate folders in every root (if enabled)
    3. Phase 2: deduplicate files in every root's subfolders
    4. Log the summary

    An unreachable root is logged and skipped; budget exhaustion ends the run
    early with a partial summary.
    """
    log = log or logger

    if not config.root_folder_ids:
        raise ConfigurationError("root_folder_ids is empty, nothing to process")

    budget = ExecutionBudget(config.max_execution_time_seconds, monotonic=monotonic)
    summary = RunSummary(dry_run=config.dry_run, roots_total=len(config.root_folder_ids))
    totals = StatsAggregator()

    log.info("drive_cleaner_started", **describe_config(config))

    roots = []
    for root_id in config.root_folder_ids:
        try:
            roots.append(store.get_folder(root_id))
        except StoreAccessError as e:
            summary.roots_failed += 1
            log.error("root_access_failed", root_id=root_id, error=str(e))

    if config.merge_folders_enabled:
        for root in roots:
            if not budget.within_budget():
                totals.merge.budget_exhausted = True
                log.info("global_timeout", phase="merge")
                break
            try:
                totals.add_merge_stats(merge_duplicate_folders(store, root, config, budget, log=log))
            except StoreAccessError as e:
                totals.merge.errors += 1
                log.error("root_merge_failed", root=root.name, root_id=root.id, error=str(e))

    for root in roots:
        if not budget.within_budget():
            totals.processing.budget_exhausted = True
            log.info("global_timeout", phase="dedup")
            break
        try:
            totals.add_processing(process_root(store, root, config, budget, clock=clock, rng=rng, log=log))
            summary.roots_processed += 1
        except StoreAccessError as e:
            summary.roots_failed += 1
            log.error("root_processing_failed", root=root.name, root_id=root.id, error=str(e))

    summary.merge = totals.merge
    summary.processing = totals.processing
    summary.duration_seconds = budget.elapsed_seconds

    processing = summary.processing
    log.info(
        "drive_cleaner_completed",
        duration=format_duration(summary.duration_seconds),
        folders_processed=processing.folders_processed,
        total_folders=processing.total_folders,
        files_analyzed=processing.files_analyzed,
        files_skipped=processing.files_skipped,
        files_deleted=processing.files_deleted,
        space_freed=format_bytes(processing.bytes_freed),
        folders_merged=summary.merge.folders_merged,
        files_moved=summary.merge.files_moved,
        budget_exhausted=summary.budget_exhausted,
        dry_run=config.dry_run,
    )
    if config.dry_run:
        log.info("dry_run_reminder", message="No file was trashed, set dry_run=false to apply")

    return summary
