"""Page hierarchy reconstruction and navigation menu sync."""

from .models import HierarchyNode, HierarchyIndex
from .hierarchy_builder import HierarchyBuilder
from .menu_synchronizer import MenuSynchronizer
from .navigation_sync import NavigationSync

__all__ = [
    'HierarchyNode',
    'HierarchyIndex',
    'HierarchyBuilder',
    'MenuSynchronizer',
    'NavigationSync',
]
