"""Link registry library.

Maps Notion resources to public slugs and local content records, and owns
the canonicalization of Notion ids.
"""

from .identity import IdentityNormalizer
from .slug_converter import SlugConverter
from .models import RegistryEntry, RemoteType, SyncStatus
from .link_registry import LinkRegistry

__all__ = [
    'IdentityNormalizer',
    'SlugConverter',
    'RegistryEntry',
    'RemoteType',
    'SyncStatus',
    'LinkRegistry',
]
