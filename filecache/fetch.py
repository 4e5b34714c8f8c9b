"""
Read-through caching of JSON API responses.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Dict, Optional

from .cache import CacheResult, FileCache
from .http import HTTPClient
from .max_age import MaxAge

LOGGER = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class CachedJSONFetcher:
    """
    Fetch JSON over HTTP, keeping each response in a :class:`FileCache`.
    """

    def __init__(
        self,
        http: HTTPClient,
        cache: FileCache,
        *,
        default_max_age: Optional[MaxAge] = None,
    ):
        self.http = http
        self.cache = cache
        self.default_max_age = default_max_age

    @staticmethod
    def cache_key(path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """
        Filesystem safe key for a request path and its query parameters.
        """
        key = _UNSAFE.sub("_", path.strip("/")) or "root"
        if params:
            items = tuple(sorted(params.items()))
            suffix = "_".join(f"{name}-{value}" for name, value in items)
            key = f"{key}__{_UNSAFE.sub('_', suffix)}"
        return key

    async def fetch(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        max_age: Optional[MaxAge] = None,
        cache_key: Optional[str] = None,
        use_cache: bool = True,
    ) -> CacheResult:
        """
        Return the response for ``path``, from the cache when it is fresh enough.
        """
        if not use_cache:
            started = time.perf_counter()
            payload = await asyncio.to_thread(self.http.get_json, path, params=params)
            return CacheResult(
                from_cache=False,
                value=payload,
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )

        key = cache_key or self.cache_key(path, params)
        ttl = max_age if max_age is not None else self.default_max_age
        result = await self.cache.with_cache(
            key,
            lambda: asyncio.to_thread(self.http.get_json, path, params=params),
            ttl,
        )
        if not result.from_cache:
            LOGGER.debug("Fetched %s into cache key %s", path, key)
        return result
