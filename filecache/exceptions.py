"""
Custom exceptions for the file cache and its fetch helpers.
"""
from __future__ import annotations

from typing import Optional


class CacheError(RuntimeError):
    """
    Base class for every error raised by the cache.
    """


class StorageError(CacheError):
    """
    Raised when the filesystem fails for a reason other than a missing entry.
    """

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SerializationError(CacheError):
    """
    Raised when a value cannot be written as JSON.
    """


class DeserializationError(CacheError):
    """
    Raised when a cache file does not hold valid JSON.
    """

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class InvalidDurationError(CacheError, ValueError):
    """
    Raised when a max age cannot be converted to milliseconds.
    """


class CacheConfigError(CacheError):
    """
    Raised when a settings file has an unexpected shape.
    """


class FetchError(RuntimeError):
    """
    Generic HTTP fetch error.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchRateLimitError(FetchError):
    """
    Raised when the remote API indicates that a rate limit has been hit.
    """


class FetchNotFoundError(FetchError):
    """
    Raised when a requested resource is not found.
    """
