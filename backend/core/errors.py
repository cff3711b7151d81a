"""
Exception types shared across the archive search backend.
"""
from typing import Optional


class ArchiveError(Exception):
    """Base class for archive search errors."""
    pass


class NotReadyError(ArchiveError):
    """Raised when the index or transcripts are accessed before load() resolves."""

    def __init__(self, message: str = "Search index not loaded. Call load() first."):
        super().__init__(message)


class FetchError(ArchiveError):
    """Raised when a bulk payload cannot be downloaded."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PayloadParseError(ArchiveError):
    """Raised when a bulk payload is not valid serialized data."""
    pass


class CacheError(ArchiveError):
    """Raised inside the cache layer; callers treat it as a miss."""
    pass


class MalformedDocumentError(ArchiveError):
    """Raised when a transcript document fails structural validation."""

    def __init__(self, message: str, date: Optional[str] = None):
        super().__init__(message)
        self.date = date


class LoadExhaustedError(ArchiveError):
    """Raised when every load strategy failed."""

    def __init__(self, message: str, attempts: Optional[dict] = None):
        super().__init__(message)
        self.attempts = attempts or {}


class ConfigurationError(ArchiveError):
    """Raised when configuration is invalid."""
    pass
