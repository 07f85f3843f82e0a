"""Import images embedded in synced pages into the local media directory.

The orchestrator asks for a resolver per page; the block converter calls
it for every image and uses the returned local URL, or keeps the Notion
URL when the image was not imported. A failed download never fails the
page sync: it is recorded in the media store and the sync log instead.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from src.notion_api.errors import MediaDownloadError, UnsupportedMediaError
from src.notion_api.media_downloader import MediaDownloader
from src.storage.media_store import MediaStore, source_key
from src.storage.models import MediaFile, MediaStatus
from src.storage.sync_log import CATEGORY_IMAGE, SEVERITY_WARNING, SyncLog

logger = logging.getLogger(__name__)

# (image url, block id) -> local URL, or None to keep the original
MediaResolver = Callable[[str, Optional[str]], Optional[str]]


class MediaImporter:
    """Downloads images once and maps them to their local URLs.

    Example:
        >>> importer = MediaImporter(MediaDownloader(), media_store, ".notion-sync/media")
        >>> resolve = importer.resolver_for("598337872cf94fdf8782e53db20768a5", 12)
        >>> resolve("https://prod-files-secure.s3.us-west-2.amazonaws.com/a/b.png?X-Amz=1", "blk")
        '/media/3f2a...c1.png'
    """

    def __init__(
        self,
        downloader: MediaDownloader,
        media_store: MediaStore,
        directory: Union[str, Path],
        url_prefix: str = "/media",
        sync_log: Optional[SyncLog] = None,
        enabled: bool = True,
    ):
        self._downloader = downloader
        self._media_store = media_store
        self.directory = Path(directory)
        self._url_prefix = url_prefix.rstrip('/')
        self._sync_log = sync_log
        self.enabled = enabled

    def url_for(self, file_name: str) -> str:
        return f"{self._url_prefix}/{file_name}"

    def resolver_for(self, remote_id: str, local_content_id: Optional[int]) -> Optional[MediaResolver]:
        """Resolver bound to one page, or None when importing is disabled."""
        if not self.enabled:
            return None

        def resolve(url: str, block_id: Optional[str] = None) -> Optional[str]:
            return self.import_url(url, remote_id=remote_id, local_content_id=local_content_id, block_id=block_id)

        return resolve

    def import_url(
        self,
        url: str,
        remote_id: Optional[str] = None,
        local_content_id: Optional[int] = None,
        block_id: Optional[str] = None,
    ) -> Optional[str]:
        """Import one image.

        Returns:
            Local URL of the file, or None when the original URL should stay
        """
        existing = self._media_store.get(url)

        if not self._downloader.should_download(url):
            if existing is None:
                self._media_store.save(MediaFile(
                    source_key=source_key(url),
                    source_url=url,
                    status=MediaStatus.EXTERNAL,
                    local_content_id=local_content_id,
                ))
            return None

        if existing is not None:
            if existing.status == MediaStatus.UNSUPPORTED:
                return None
            if existing.status == MediaStatus.DOWNLOADED and existing.file_name \
                    and (self.directory / existing.file_name).exists():
                return self.url_for(existing.file_name)

        try:
            downloaded = self._downloader.download(url, self.directory)
        except UnsupportedMediaError as e:
            self._media_store.save(MediaFile(
                source_key=source_key(url),
                source_url=url,
                status=MediaStatus.UNSUPPORTED,
                local_content_id=local_content_id,
                last_error=e.reason,
            ))
            self._log_problem(f"Image not imported: {e.reason}", url, remote_id, local_content_id, block_id)
            return None
        except MediaDownloadError as e:
            media = self._media_store.record_failure(url, e.reason, local_content_id)
            self._log_problem(
                f"Image download failed ({media.error_count} attempt(s)): {e.reason}",
                url, remote_id, local_content_id, block_id,
            )
            return None

        self._media_store.save(MediaFile(
            source_key=source_key(url),
            source_url=url,
            status=MediaStatus.DOWNLOADED,
            file_name=downloaded.file_name,
            mime_type=downloaded.mime_type,
            size=downloaded.size,
            local_content_id=local_content_id,
        ))
        return self.url_for(downloaded.file_name)

    def _log_problem(
        self,
        message: str,
        url: str,
        remote_id: Optional[str],
        local_content_id: Optional[int],
        block_id: Optional[str],
    ) -> None:
        logger.warning(f"{message} ({source_key(url)})")
        if self._sync_log is None:
            return
        self._sync_log.log(
            SEVERITY_WARNING,
            CATEGORY_IMAGE,
            message,
            remote_id=remote_id,
            local_content_id=local_content_id,
            context={'url': source_key(url), 'block_id': block_id},
        )
