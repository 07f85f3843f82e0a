"""One-way sync from Notion into the local content store.

SyncOrchestrator syncs single pages, BatchWorker runs bulk jobs, and
StatusResolver reports the combined state of both. LinkUpdater keeps
stored links pointing at current slugs and MediaImporter copies embedded
images into the media directory.
"""

from .models import SyncResult, StatusKind, BatchProgress, CompositeStatus
from .listeners import SyncListener, SyncLogListener, infer_category
from .orchestrator import SyncOrchestrator, child_page_ids
from .link_updater import LinkUpdater
from .media_importer import MediaImporter, MediaResolver
from .status_resolver import StatusResolver
from .batch_worker import BatchWorker

__all__ = [
    'SyncResult',
    'StatusKind',
    'BatchProgress',
    'CompositeStatus',
    'SyncListener',
    'SyncLogListener',
    'infer_category',
    'SyncOrchestrator',
    'child_page_ids',
    'LinkUpdater',
    'MediaImporter',
    'MediaResolver',
    'StatusResolver',
    'BatchWorker',
]
