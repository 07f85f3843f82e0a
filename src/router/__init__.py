"""Public routing for Notion links and the HTTP status surface."""

from .url_router import RouteResult, UrlRouter
from .web import create_app

__all__ = [
    'RouteResult',
    'UrlRouter',
    'create_app',
]
