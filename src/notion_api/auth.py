"""Authentication module for loading the Notion integration token.

The token is loaded from the environment (or a .env file via python-dotenv)
and is never written to the YAML configuration or logged.
"""

import os
from typing import NamedTuple

from dotenv import load_dotenv

from .errors import InvalidCredentialsError

DEFAULT_BASE_URL = "https://api.notion.com/v1"


class Credentials(NamedTuple):
    """Notion API credentials."""
    token: str
    base_url: str


class Authenticator:
    """Loads and validates the Notion integration token.

    Required environment variables:
        NOTION_TOKEN: Internal integration secret

    Optional environment variables:
        NOTION_API_URL: Override for the API base URL (used by tests and proxies)

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Connecting to {creds.base_url}")
    """

    def __init__(self, default_base_url: str = DEFAULT_BASE_URL):
        """Initialize the authenticator by loading environment variables from .env file.

        Args:
            default_base_url: API base URL used when NOTION_API_URL is not set
        """
        load_dotenv()
        self._default_base_url = default_base_url

    def get_credentials(self) -> Credentials:
        """Get Notion credentials from environment variables.

        Returns:
            Credentials: A named tuple containing token and base_url

        Raises:
            InvalidCredentialsError: If NOTION_TOKEN is missing
        """
        token = os.getenv('NOTION_TOKEN')
        base_url = os.getenv('NOTION_API_URL') or self._default_base_url

        if not token:
            raise InvalidCredentialsError(endpoint=base_url, token_hint="NOTION_TOKEN not set")

        return Credentials(token=token, base_url=base_url)
