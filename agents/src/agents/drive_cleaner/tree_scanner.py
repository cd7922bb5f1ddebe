"""
Breadth-first folder tree scanner.

Features:
- Explicit work queue (no recursion) with a visited set, so shortcut-style
  reference cycles cannot loop forever
- Exclusions enforced at the boundary: an excluded child and its whole subtree
  are never visited
- Children ordered by identity before enqueueing, so tie-breaks downstream do not
  depend on the store's unspecified listing order
- Unreachable folders are skipped with a diagnostic, the scan continues
"""

from __future__ import annotations

from collections import deque
from typing import Optional

import structlog

from agents.src.adapters.drive_store_interface import DriveStore, FolderRecord
from agents.src.agents.drive_cleaner.models import FolderNode
from config.exceptions import StoreAccessError

logger = structlog.get_logger(__name__)


class FolderTreeScanner:
    """
    Enumerate the folder subtree below a root.

    Args:
        store: Remote store
        log: Optional structlog logger (module logger by default)
    """

    def __init__(self, store: DriveStore, log=None):
        self.store = store
        self.log = log or logger
        self.errors: list[str] = []

    def scan(
        self,
        root: FolderRecord,
        excluded_ids: frozenset[str] = frozenset(),
        recursive: bool = True,
    ) -> list[FolderNode]:
        """
        Scan the folders below `root` (root itself is not reported).

        Args:
            root: Folder to start from
            excluded_ids: Folder IDs whose subtree is skipped
            recursive: If False, only the root's direct children are reported

        Returns:
            FolderNode list in breadth-first order
        """
        self.errors = []
        nodes: list[FolderNode] = []
        visited: set[str] = {root.id}
        queue: deque[tuple[str, int, str]] = deque([(root.id, 0, root.name)])

        while queue:
            folder_id, depth, path = queue.popleft()

            children = self._list_children(folder_id, path)
            if children is None:
                continue

            for child in children:
                if child.id in excluded_ids:
                    self.log.debug("folder_excluded", folder_id=child.id, path=f"{path}/{child.name}")
                    continue

                if child.id in visited:
                    self.log.warning(
                        "folder_already_visited",
                        folder_id=child.id,
                        path=f"{path}/{child.name}",
                    )
                    continue
                visited.add(child.id)

                node = FolderNode(
                    id=child.id,
                    name=child.name,
                    parent_id=folder_id,
                    created_at=child.created_at,
                    modified_at=child.modified_at,
                    depth=depth + 1,
                    path=f"{path}/{child.name}",
                )
                nodes.append(node)

                if recursive:
                    queue.append((node.id, node.depth, node.path))

        return nodes

    def _list_children(self, folder_id: str, path: str) -> Optional[list[FolderRecord]]:
        """List child folders sorted by ID, or None when unreachable."""
        try:
            children = self.store.list_folders(folder_id)
        except StoreAccessError as e:
            self.errors.append(f"{path}: {e}")
            self.log.warning("folder_scan_failed", folder_id=folder_id, path=path, error=str(e))
            return None

        return sorted((c for c in children if not c.trashed), key=lambda c: c.id)
