"""Exception hierarchy.  Whole-operation failures are raised as distinct types."""

from __future__ import annotations


class IrrenhausError(Exception):
    """Base class for every error raised by the client."""


class NotFoundError(IrrenhausError):
    """The remote torrent or feed does not exist (HTTP 404)."""


class AuthenticationError(IrrenhausError):
    """The tracker rejected the configured credentials."""


class FetchError(IrrenhausError):
    """A request failed after all retries (transport error or bad status)."""

    def __init__(self, url: str, reason: object) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ParseError(IrrenhausError):
    """Markup did not have the shape an extractor expects."""


class DecodeError(IrrenhausError):
    """A shoutbox payload is not valid wire format."""


class ServerOverloadedError(DecodeError):
    """The shoutbox answered with its overload notice instead of data."""


class UploadError(IrrenhausError):
    """The tracker refused an upload."""


class ActionError(IrrenhausError):
    """The tracker reported an error for a thank/comment action."""
