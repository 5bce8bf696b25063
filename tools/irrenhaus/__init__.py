"""
Irrenhaus client – programmatic access to the irrenhaus tracker.

Supports:
  • Searching the torrent catalog (all result pages, fetched concurrently)
  • Fetching torrent details with file list, peer roster and snatch history
  • Downloading, uploading, thanking and commenting on torrents
  • Reading from and writing to the shoutbox
"""

from .client import Irrenhaus
from .config import ClientConfig, Credentials, SessionCookies, SiteConfig
from .crawler import SearchQuery
from .errors import (
    ActionError,
    AuthenticationError,
    DecodeError,
    FetchError,
    IrrenhausError,
    NotFoundError,
    ParseError,
    ServerOverloadedError,
    UploadError,
)

__all__ = [
    "ActionError",
    "AuthenticationError",
    "ClientConfig",
    "Credentials",
    "DecodeError",
    "FetchError",
    "Irrenhaus",
    "IrrenhausError",
    "NotFoundError",
    "ParseError",
    "SearchQuery",
    "ServerOverloadedError",
    "SessionCookies",
    "SiteConfig",
    "UploadError",
]
