"""Data models for page hierarchy reconstruction."""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Set

from src.storage.models import LocalContent


@dataclass
class HierarchyNode:
    """One page in a reconstructed tree.

    Built on demand from parent pointers and never persisted.

    Attributes:
        local_id: Local content record id
        remote_id: Compact Notion id
        title: Page title
        order: Position among siblings (0-based)
        children: Child nodes in sibling order
    """
    local_id: int
    remote_id: str
    title: str
    order: int = 0
    children: List['HierarchyNode'] = field(default_factory=list)

    def walk(self) -> Iterator['HierarchyNode']:
        """Yield this node and its descendants depth-first, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()

    def local_ids(self) -> Set[int]:
        return {node.local_id for node in self.walk()}


@dataclass
class HierarchyIndex:
    """In-memory view of all synced records, keyed by compact Notion id.

    Attributes:
        by_remote: Compact id → record
        children_of: Compact parent id → child records
    """
    by_remote: Dict[str, LocalContent] = field(default_factory=dict)
    children_of: Dict[str, List[LocalContent]] = field(default_factory=dict)
