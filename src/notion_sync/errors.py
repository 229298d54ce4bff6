"""Exception taxonomy for notion_sync.

``ConfigError`` is raised before any I/O.  ``ConnectivityError`` and its
subclasses abort a whole sync direction.  ``RateLimitExceeded`` and
``NotionAPIError`` come out of the client; the pipelines catch them at the
per-item boundary.  ``ItemTransferError`` wraps any failure of a single
record so it can be reported without stopping the pass.
"""

from __future__ import annotations


class NotionSyncError(Exception):
    """Base class for all notion_sync errors."""


class ConfigError(NotionSyncError):
    """Missing or invalid configuration (token, database id, ...)."""


class ConnectivityError(NotionSyncError):
    """The remote store cannot be reached or refused the request."""


class AuthenticationError(ConnectivityError):
    """The integration token was rejected (HTTP 401/403)."""


class NoIndirectionTarget(ConnectivityError):
    """The database exposes no data source to query through."""

    def __init__(self, database_id: str) -> None:
        super().__init__(
            f"Database {database_id} has no data sources. "
            "Check that the database exists and is shared with the integration."
        )
        self.database_id = database_id


class RateLimitExceeded(NotionSyncError):
    """Rate limiting persisted after all retries were used.

    Attributes:
        retry_after: Last server-provided delay hint in seconds, if any.
    """

    def __init__(
        self, message: str, retry_after: float | None = None
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class NotionAPIError(NotionSyncError):
    """Non-retryable error response from the Notion API."""

    def __init__(
        self, status: int, code: str | None, message: str
    ) -> None:
        super().__init__(f"Notion API error {status} ({code}): {message}")
        self.status = status
        self.code = code
        self.api_message = message


class ItemTransferError(NotionSyncError):
    """Transfer of a single record failed (conversion, write, or rejection)."""

    def __init__(
        self,
        message: str,
        record_id: str | None = None,
        slug: str | None = None,
    ) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.slug = slug
