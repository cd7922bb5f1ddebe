"""Partition scanned folders into same-name sibling groups."""

from __future__ import annotations

from agents.src.agents.drive_cleaner.models import FolderNode

FolderGroupKey = tuple[str, str]


def group_duplicate_folders(nodes: list[FolderNode]) -> dict[FolderGroupKey, list[FolderNode]]:
    """
    Group folders by (parent ID, lowercased name), keeping input order.

    Groups of one are returned too; callers skip them.
    """
    groups: dict[FolderGroupKey, list[FolderNode]] = {}
    for node in nodes:
        key = (node.parent_id, node.name.lower())
        groups.setdefault(key, []).append(node)
    return groups


def actionable_groups(
    groups: dict[FolderGroupKey, list[FolderNode]],
) -> dict[FolderGroupKey, list[FolderNode]]:
    """Only the groups holding two folders or more."""
    return {key: folders for key, folders in groups.items() if len(folders) > 1}
