"""
Duplication window rules.

Same-content files created close together are accidental duplicates (one is
trashed); same-content files created far apart are intentional copies (all are
kept). Both phases decide through the functions below; nothing here does I/O.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from agents.src.agents.drive_cleaner.models import MergeDecision


def is_group_duplicate(
    candidate_created: datetime,
    earliest_created: datetime,
    window: timedelta,
) -> bool:
    """
    Decide whether a member of a content-hash group is an accidental duplicate.

    The distance is always measured from the group's earliest member, never
    from the previous kept one. A member exactly `window` away is kept.
    """
    return candidate_created - earliest_created < window


def resolve_collision(
    existing_hash: Optional[str],
    incoming_hash: Optional[str],
    existing_created: datetime,
    incoming_created: datetime,
    window: timedelta,
) -> tuple[MergeDecision, str]:
    """
    Decide what to do with an incoming file whose name is taken in the target.

    Returns:
        (decision, human readable reason)
    """
    if not existing_hash or not incoming_hash:
        return MergeDecision.RENAME_INCOMING, "no content hash available"

    if existing_hash != incoming_hash:
        return MergeDecision.RENAME_INCOMING, "different content"

    if abs(incoming_created - existing_created) > window:
        hours = window.total_seconds() / 3600
        return (
            MergeDecision.RENAME_INCOMING,
            f"same content but outside {hours:g}h window",
        )

    if existing_created <= incoming_created:
        return MergeDecision.KEEP_EXISTING, "same content, existing is older"
    return MergeDecision.KEEP_INCOMING, "same content, incoming is older"
