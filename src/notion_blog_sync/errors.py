"""Error types raised by the sync pipeline."""

from __future__ import annotations


class BlogSyncError(Exception):
    """Base error for the blog sync service."""


class ConfigurationError(BlogSyncError):
    """Raised when a required setting is missing."""


class SourceQueryError(BlogSyncError):
    """Raised when a Notion request fails or returns an unreadable body."""

    def __init__(
        self, message: str, *, code: str | None = None, status: int | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status

    def __str__(self) -> str:
        message = super().__str__()
        if self.code:
            return f"{self.code}: {message}"
        return message


class EnrichmentError(BlogSyncError):
    """Raised when a page body cannot be fetched or rendered."""


class PersistenceError(BlogSyncError):
    """Raised when the primary artifact cannot be written."""
