"""Thin authenticated wrapper over the Notion REST API.

This module wraps a requests.Session and provides error translation from
HTTP failures to our typed exception hierarchy. It integrates with the
retry logic for handling rate limits.
"""

import logging
import re
from typing import Dict, Any, Optional

import requests
from requests.exceptions import Timeout, ConnectionError

from .auth import Authenticator, Credentials
from .errors import (
    InvalidCredentialsError,
    PageNotFoundError,
    APIUnreachableError,
    APIAccessError,
)
from .retry_logic import retry_on_rate_limit

logger = logging.getLogger(__name__)

DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEOUT = 30


def format_api_error(status_code: int, data: Optional[Dict[str, Any]] = None) -> str:
    """Build a user-facing message for a failed Notion API response.

    Args:
        status_code: HTTP status code of the response
        data: Decoded JSON error body (Notion returns {"code", "message"})

    Returns:
        Message suitable for display and for persisting as a sync error
    """
    api_message = ''
    if data:
        api_message = data.get('message') or data.get('error') or ''

    if status_code == 400:
        return f"Bad request: {api_message or 'The request was invalid.'}"
    if status_code == 401:
        return (
            "Authentication failed. Please check that your API token is correct "
            "and has not been revoked."
        )
    if status_code == 403:
        return "Access forbidden. Make sure you have shared your Notion pages with this integration."
    if status_code == 404:
        return f"Resource not found: {api_message or 'The requested resource does not exist.'}"
    if status_code == 429:
        return (
            "Too many requests. Please wait a moment and try again. "
            "Notion has rate limits to ensure service stability."
        )
    if status_code in (500, 502, 503, 504):
        return f"Notion server error: {api_message or 'The Notion API is experiencing issues.'}. Please try again later."
    return f"API error (Code {status_code}): {api_message or 'An unknown error occurred.'}"


class NotionClient:
    """Wrapper around the Notion REST API with error translation.

    This class provides a thin wrapper that:
    1. Loads the integration token through the Authenticator
    2. Sends Notion-Version and Bearer headers on every request
    3. Translates HTTP errors to typed exceptions
    4. Retries 429 responses with exponential backoff

    Example:
        >>> client = NotionClient(Authenticator())
        >>> page = client.get_page("59833787-2cf9-4fdf-8782-e53db20768a5")
    """

    def __init__(
        self,
        authenticator: Authenticator,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            authenticator: Authenticator instance for loading the token
            notion_version: Value of the Notion-Version header
            timeout: Per-request timeout in seconds
            session: Optional preconfigured session (tests inject a mock)
        """
        self._authenticator = authenticator
        self._notion_version = notion_version
        self._timeout = timeout
        self._session = session
        self._credentials: Optional[Credentials] = None

    def _get_credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials = self._authenticator.get_credentials()
        return self._credentials

    def _get_session(self) -> requests.Session:
        """Get or create the HTTP session with Notion headers applied."""
        if self._session is None:
            self._session = requests.Session()
        creds = self._get_credentials()
        self._session.headers.update({
            'Authorization': f"Bearer {creds.token}",
            'Notion-Version': self._notion_version,
            'Content-Type': 'application/json',
        })
        return self._session

    def _validate_page_id(self, page_id: str) -> None:
        """Validate that an id is safe to interpolate into a request path.

        Args:
            page_id: The page or block ID to validate

        Raises:
            ValueError: If page_id is empty or contains characters other than
                letters, digits and hyphens
        """
        if not page_id or not str(page_id).strip():
            raise ValueError("page_id cannot be empty")

        if not re.match(r'^[a-zA-Z0-9\-]+$', str(page_id).strip()):
            raise ValueError(
                f"Invalid page_id format: '{page_id}'. "
                f"Page IDs must contain only letters, digits and hyphens."
            )

    def _sanitize_credentials(self, text: str) -> str:
        """Mask bearer tokens and Notion secrets in error text.

        Example:
            >>> client._sanitize_credentials("Bearer secret_abc123 rejected")
            'Bearer ***REDACTED*** rejected'
        """
        if not text:
            return text

        sanitized = re.sub(
            r'Authorization:\s*[^\n\r]+',
            'Authorization: ***REDACTED***',
            text,
            flags=re.IGNORECASE
        )
        sanitized = re.sub(
            r'Bearer\s+[^\s\n\r]+',
            'Bearer ***REDACTED***',
            sanitized,
            flags=re.IGNORECASE
        )
        # Internal integration secrets start with secret_ or ntn_
        sanitized = re.sub(r'\b(secret|ntn)_[A-Za-z0-9]{8,}\b', '***REDACTED***', sanitized)
        return sanitized

    def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send one request and translate the response.

        Raises:
            APIAccessError: With status_code=429 so the retry wrapper can back off
        """
        session = self._get_session()
        url = f"{self._get_credentials().base_url.rstrip('/')}/{path.lstrip('/')}"
        logger.debug(f"Notion API: {method} {path}")

        try:
            response = session.request(method, url, timeout=self._timeout, **kwargs)
        except (Timeout, ConnectionError) as e:
            logger.error(f"Notion API unreachable: {self._sanitize_credentials(str(e))}")
            raise APIUnreachableError(endpoint=self._get_credentials().base_url)

        if response.status_code >= 400:
            raise self._translate_error(response, path)

        return response.json()

    def _translate_error(self, response: requests.Response, path: str) -> Exception:
        """Translate an HTTP error response into a typed exception.

        Args:
            response: The failed response
            path: Request path (used to recover the resource id for 404s)

        Returns:
            Exception: One of our typed exceptions
        """
        try:
            data = response.json()
        except ValueError:
            data = {'message': response.text}

        status_code = response.status_code
        message = self._sanitize_credentials(format_api_error(status_code, data))

        if status_code == 401:
            return InvalidCredentialsError(endpoint=self._get_credentials().base_url)

        if status_code == 404:
            match = re.search(r'(?:pages|blocks|databases)/([^/?]+)', path)
            return PageNotFoundError(page_id=match.group(1) if match else "unknown")

        logger.warning(f"Notion API error {status_code} on {path}: {message}")
        return APIAccessError(message, status_code=status_code)

    def get_page(self, page_id: str) -> Dict[str, Any]:
        """Retrieve a page object (properties, parent, timestamps).

        Args:
            page_id: Notion page ID in compact or delimited form

        Returns:
            Decoded page object

        Raises:
            ValueError: If page_id has an invalid format
            PageNotFoundError: If the page is missing or not shared with the integration
            InvalidCredentialsError: If the token is rejected
            APIUnreachableError: If the API cannot be reached
            APIAccessError: For all other API failures
        """
        self._validate_page_id(page_id)
        return retry_on_rate_limit(self._send, 'GET', f"pages/{page_id.strip()}")

    def get_block_children(
        self,
        block_id: str,
        start_cursor: Optional[str] = None,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        """Retrieve one page of child blocks.

        Returns:
            Decoded list object with results, has_more and next_cursor
        """
        self._validate_page_id(block_id)
        params: Dict[str, Any] = {'page_size': page_size}
        if start_cursor:
            params['start_cursor'] = start_cursor
        return retry_on_rate_limit(
            self._send, 'GET', f"blocks/{block_id.strip()}/children", params=params
        )

    def search_pages(self, query: str = "", start_cursor: Optional[str] = None, page_size: int = 100) -> Dict[str, Any]:
        """Search pages shared with the integration, most recently edited first."""
        payload: Dict[str, Any] = {
            'query': query,
            'page_size': page_size,
            'filter': {'value': 'page', 'property': 'object'},
            'sort': {'direction': 'descending', 'timestamp': 'last_edited_time'},
        }
        if start_cursor:
            payload['start_cursor'] = start_cursor
        return retry_on_rate_limit(self._send, 'POST', "search", json=payload)

    def get_database(self, database_id: str) -> Dict[str, Any]:
        """Retrieve a database object (title, property schema, parent, timestamps).

        Raises:
            ValueError: If database_id has an invalid format
            PageNotFoundError: If the database is missing or not shared with the integration
        """
        self._validate_page_id(database_id)
        return retry_on_rate_limit(self._send, 'GET', f"databases/{database_id.strip()}")

    def query_database(
        self,
        database_id: str,
        start_cursor: Optional[str] = None,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        """Retrieve one page of database entries, oldest first.

        Returns:
            Decoded list object with results, has_more and next_cursor
        """
        self._validate_page_id(database_id)
        payload: Dict[str, Any] = {
            'page_size': page_size,
            'sorts': [{'timestamp': 'created_time', 'direction': 'ascending'}],
        }
        if start_cursor:
            payload['start_cursor'] = start_cursor
        return retry_on_rate_limit(
            self._send, 'POST', f"databases/{database_id.strip()}/query", json=payload
        )
