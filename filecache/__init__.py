"""
Filesystem backed JSON cache with time based expiry.
"""

from .cache import MISSING, CacheResult, FileCache
from .config import CacheSettings, load_settings
from .exceptions import (
    CacheConfigError,
    CacheError,
    DeserializationError,
    FetchError,
    FetchNotFoundError,
    FetchRateLimitError,
    InvalidDurationError,
    SerializationError,
    StorageError,
)
from .max_age import MaxAge, max_age_to_ms

__all__ = [
    "MISSING",
    "CacheResult",
    "FileCache",
    "CacheSettings",
    "load_settings",
    "CacheConfigError",
    "CacheError",
    "DeserializationError",
    "FetchError",
    "FetchNotFoundError",
    "FetchRateLimitError",
    "InvalidDurationError",
    "SerializationError",
    "StorageError",
    "MaxAge",
    "max_age_to_ms",
    "CachedJSONFetcher",
    "HTTPClient",
]


def __getattr__(name):
    if name in {"CachedJSONFetcher", "HTTPClient"}:
        from .fetch import CachedJSONFetcher  # requests is only needed for fetching
        from .http import HTTPClient

        values = {"CachedJSONFetcher": CachedJSONFetcher, "HTTPClient": HTTPClient}
        return values[name]
    raise AttributeError(f"module 'filecache' has no attribute '{name}'")
