"""Download images referenced by Notion pages into a local directory.

Files uploaded to Notion are served from signed S3 URLs that expire after
about an hour, so a body that keeps them breaks soon after sync. Those are
always downloaded. Images hosted elsewhere are downloaded only when
configured, except for image CDNs that are meant to be hot-linked.
"""

import hashlib
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import requests
from requests.exceptions import RequestException

from .errors import MediaDownloadError, UnsupportedMediaError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024

ALLOWED_MIME_TYPES = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'image/svg+xml': '.svg',
    'image/bmp': '.bmp',
}

_NOTION_FILE_HOSTS = (
    's3.us-west-2.amazonaws.com',
    'prod-files-secure.s3.us-west-2.amazonaws.com',
    'file.notion.so',
)
_HOTLINK_HOSTS = ('images.unsplash.com', 'unsplash.com', 'giphy.com', 'media.giphy.com')


@dataclass
class DownloadedFile:
    """A file written to the media directory."""
    file_name: str
    mime_type: str
    size: int


def is_notion_file(url: str) -> bool:
    """True for files uploaded to Notion (signed, short-lived URLs)."""
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    if host == 's3.us-west-2.amazonaws.com':
        return parts.path.startswith('/secure.notion-static.com/')
    return host in _NOTION_FILE_HOSTS


class MediaDownloader:
    """Streams images to disk with type and size checks.

    Example:
        >>> downloader = MediaDownloader()
        >>> downloader.should_download("https://prod-files-secure.s3.us-west-2.amazonaws.com/a/b.png?X=1")
        True
        >>> downloader.download(url, Path(".notion-sync/media"))
        DownloadedFile(file_name='3f2a...c1.png', mime_type='image/png', size=48213)
    """

    def __init__(
        self,
        download_external: bool = False,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the downloader.

        Args:
            download_external: Also download images not hosted by Notion
            max_file_size: Largest accepted file in bytes
            timeout: Per-request timeout in seconds
            session: Optional preconfigured session (tests inject a mock)
        """
        self._download_external = download_external
        self._max_file_size = max_file_size
        self._timeout = timeout
        self._session = session or requests.Session()

    def should_download(self, url: Optional[str]) -> bool:
        if not url or not url.lower().startswith(('http://', 'https://')):
            return False
        if is_notion_file(url):
            return True
        host = (urlsplit(url).hostname or '').lower()
        if host in _HOTLINK_HOSTS:
            return False
        return self._download_external

    def download(self, url: str, directory: Path) -> DownloadedFile:
        """Download one image into `directory`.

        The file name is derived from the URL without its query string, so
        a re-signed URL for the same upload maps to the same file.

        Raises:
            UnsupportedMediaError: If the type is not an allowed image type or the file is too large
            MediaDownloadError: If the request fails
        """
        try:
            response = self._session.get(url, stream=True, timeout=self._timeout)
        except RequestException as e:
            raise MediaDownloadError(url, str(e))

        try:
            if response.status_code >= 400:
                raise MediaDownloadError(url, f"HTTP {response.status_code}")

            mime_type = self._mime_type(response, url)
            if mime_type not in ALLOWED_MIME_TYPES:
                raise UnsupportedMediaError(url, f"unsupported type {mime_type or 'unknown'}")

            declared = response.headers.get('Content-Length')
            if declared and declared.isdigit() and int(declared) > self._max_file_size:
                raise UnsupportedMediaError(url, f"file is larger than {self._max_file_size} bytes")

            directory.mkdir(parents=True, exist_ok=True)
            file_name = self.file_name_for(url, mime_type)
            target = directory / file_name
            partial = target.with_suffix(target.suffix + '.part')
            size = 0
            try:
                with open(partial, 'wb') as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        size += len(chunk)
                        if size > self._max_file_size:
                            raise UnsupportedMediaError(url, f"file is larger than {self._max_file_size} bytes")
                        handle.write(chunk)
                partial.replace(target)
            except RequestException as e:
                raise MediaDownloadError(url, str(e))
            finally:
                if partial.exists():
                    partial.unlink()
        finally:
            response.close()

        logger.info(f"Downloaded {file_name} ({size} bytes)")
        return DownloadedFile(file_name=file_name, mime_type=mime_type, size=size)

    @staticmethod
    def file_name_for(url: str, mime_type: str) -> str:
        parts = urlsplit(url)
        digest = hashlib.sha1(f"{parts.netloc}{parts.path}".encode('utf-8')).hexdigest()
        return f"{digest}{ALLOWED_MIME_TYPES.get(mime_type, '')}"

    @staticmethod
    def _mime_type(response: requests.Response, url: str) -> Optional[str]:
        header = (response.headers.get('Content-Type') or '').split(';')[0].strip().lower()
        if header and header not in ('application/octet-stream', 'binary/octet-stream'):
            return 'image/jpeg' if header == 'image/jpg' else header
        guessed, _ = mimetypes.guess_type(urlsplit(url).path)
        return guessed
