"""Hierarchy builder for rebuilding Notion page trees from local records.

Every synced record carries its own Notion id and, when nested, its
parent's id. This module turns those flat parent pointers into trees.
All lookups run against an in-memory index built in one pass, so a tree
costs one query no matter how deep it is.
"""

import json
import logging
from collections import deque
from typing import Dict, List, Optional

from src.registry.identity import IdentityNormalizer
from src.storage.content_store import ContentStore
from src.storage.models import LocalContent, META_CHILD_IDS, META_PARENT_ID, META_REMOTE_ID
from .models import HierarchyIndex, HierarchyNode

logger = logging.getLogger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 10


class HierarchyBuilder:
    """Builds page trees from parent pointers stored in content metadata.

    Cycles in the stored pointers (a page listed as its own ancestor) are
    cut with a visited set, and expansion stops at `max_depth` levels
    counting the root as level 1.

    Example:
        >>> builder = HierarchyBuilder(content_store, max_depth=3)
        >>> root = builder.build_tree(builder.find_root("abc123"))
        >>> [node.title for node in root.walk()]
        ['Handbook', 'Onboarding', 'Tools']
    """

    def __init__(self, content_store: ContentStore, max_depth: int = 5, max_root_iterations: int = 10):
        """Initialize the builder.

        Args:
            content_store: Store holding the synced records
            max_depth: Deepest level to expand, clamped to 1..10
            max_root_iterations: Upper bound on upward steps in find_root
        """
        self._content_store = content_store
        self.max_depth = max(MIN_DEPTH, min(MAX_DEPTH, max_depth))
        self.max_root_iterations = max_root_iterations

    def build_index(self) -> HierarchyIndex:
        """Index every record that carries a Notion id."""
        index = HierarchyIndex()
        for record in self._content_store.find_all_with_meta(META_REMOTE_ID):
            remote_id = IdentityNormalizer.compact(record.meta.get(META_REMOTE_ID))
            if not remote_id:
                continue
            if remote_id in index.by_remote:
                logger.warning(
                    f"Records {index.by_remote[remote_id].id} and {record.id} both claim {remote_id}, "
                    f"keeping {index.by_remote[remote_id].id}"
                )
                continue
            index.by_remote[remote_id] = record

        for remote_id, record in index.by_remote.items():
            parent_id = IdentityNormalizer.compact(record.meta.get(META_PARENT_ID))
            if parent_id:
                index.children_of.setdefault(parent_id, []).append(record)

        logger.debug(f"Indexed {len(index.by_remote)} records, {len(index.children_of)} parents")
        return index

    def build_tree(self, root_remote_id: str, index: Optional[HierarchyIndex] = None) -> Optional[HierarchyNode]:
        """Build the tree under a page, breadth-first.

        Args:
            root_remote_id: Notion id of the root page, any spelling
            index: Prebuilt index (optional, built when omitted)

        Returns:
            Root HierarchyNode, or None when the root has no local record
        """
        index = index or self.build_index()
        root_id = IdentityNormalizer.compact(root_remote_id)
        root_record = index.by_remote.get(root_id)
        if root_record is None:
            logger.warning(f"No local record for root page {root_remote_id}")
            return None

        root = HierarchyNode(local_id=root_record.id, remote_id=root_id, title=root_record.title)
        visited = {root_id}
        queue = deque([(root, root_record, 1)])

        while queue:
            node, record, level = queue.popleft()
            children = index.children_of.get(node.remote_id, [])
            if not children:
                continue
            if level >= self.max_depth:
                logger.warning(
                    f"Depth limit {self.max_depth} reached at '{node.title}', "
                    f"{len(children)} child page(s) not expanded"
                )
                continue

            for order, child in enumerate(self._sorted_children(record, children)):
                child_id = IdentityNormalizer.compact(child.meta.get(META_REMOTE_ID))
                if child_id in visited:
                    logger.warning(f"Cycle detected: {child_id} already in tree under {root_id}, skipping")
                    continue
                visited.add(child_id)
                child_node = HierarchyNode(local_id=child.id, remote_id=child_id, title=child.title, order=order)
                node.children.append(child_node)
                queue.append((child_node, child, level + 1))

        return root

    def find_root(self, remote_id: str, index: Optional[HierarchyIndex] = None) -> str:
        """Walk parent pointers up to the topmost known page.

        Stops at a page without a parent, a page without a local record, a
        repeated id, or after max_root_iterations steps.

        Returns:
            Compact id of the last page reached
        """
        index = index or self.build_index()
        current = IdentityNormalizer.compact(remote_id)
        seen = {current}

        for _ in range(self.max_root_iterations):
            record = index.by_remote.get(current)
            if record is None:
                break
            parent_id = IdentityNormalizer.compact(record.meta.get(META_PARENT_ID))
            if not parent_id:
                break
            if parent_id in seen:
                logger.warning(f"Cycle detected while walking up from {remote_id} at {parent_id}")
                break
            seen.add(parent_id)
            current = parent_id
        else:
            logger.warning(f"Stopped root search for {remote_id} after {self.max_root_iterations} steps")

        return current

    def find_root_ids(self, index: Optional[HierarchyIndex] = None) -> List[str]:
        """Ids of top-level records, ordered by title.

        A record is top-level when it has no parent pointer or when its
        parent has no local record (the parent was never synced).
        """
        index = index or self.build_index()
        roots = [
            record for record in index.by_remote.values()
            if IdentityNormalizer.compact(record.meta.get(META_PARENT_ID)) not in index.by_remote
        ]
        roots.sort(key=lambda r: (r.title.lower(), r.id or 0))
        return [IdentityNormalizer.compact(r.meta.get(META_REMOTE_ID)) for r in roots]

    def build_forest(self) -> List[HierarchyNode]:
        """One tree per root page, with roots ordered by title."""
        index = self.build_index()
        forest = []
        for order, root_id in enumerate(self.find_root_ids(index)):
            tree = self.build_tree(root_id, index)
            if tree is not None:
                tree.order = order
                forest.append(tree)
        return forest

    @staticmethod
    def _sorted_children(parent: LocalContent, children: List[LocalContent]) -> List[LocalContent]:
        positions = _child_positions(parent)
        fallback = len(positions)

        def sort_key(child: LocalContent):
            child_id = IdentityNormalizer.compact(child.meta.get(META_REMOTE_ID))
            return (positions.get(child_id, fallback), child.title.lower(), child.id or 0)

        return sorted(children, key=sort_key)


def _child_positions(record: LocalContent) -> Dict[str, int]:
    raw = record.meta.get(META_CHILD_IDS)
    if not raw:
        return {}
    try:
        child_ids = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed child order on record {record.id}")
        return {}
    if not isinstance(child_ids, list):
        return {}
    return {IdentityNormalizer.compact(str(child_id)): pos for pos, child_id in enumerate(child_ids)}
