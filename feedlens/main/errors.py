"""Exceptions raised by the feed and discovery pipelines.

Every failure that reaches a caller is a :class:`FeedError`; the HTTP layer turns
it into ``{"error": message}`` with ``status_code``.
"""


class FeedError(Exception):
    """Base exception for feed fetching and discovery errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameter(FeedError):
    """Raised when the ``url`` parameter is empty after trimming."""

    status_code = 400


class InvalidURL(FeedError):
    """Raised when the ``url`` parameter is not an absolute URL."""

    status_code = 400


class UpstreamHTTPError(FeedError):
    """Raised when the target responds with a non-2xx status."""

    status_code = 502

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class UpstreamTimeout(FeedError):
    """Raised when a network operation exceeds the configured time bound."""

    status_code = 504


class NoFeedDiscovered(FeedError):
    """Raised when an HTML page was found but no feed could be located."""

    status_code = 422


class UnexpectedError(FeedError):
    """Anything else: transport faults, XML parse faults, bugs."""

    status_code = 500
