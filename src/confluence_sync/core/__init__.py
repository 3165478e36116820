"""Remote access layer: Confluence REST client, retry policy and async bridge."""

from .async_utils import run_sync
from .client import ConfluenceClient, RemoteClient
from .retry import retry_once_with_refresh

__all__ = [
    "ConfluenceClient",
    "RemoteClient",
    "retry_once_with_refresh",
    "run_sync",
]
