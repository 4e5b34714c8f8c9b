"""
Module level helpers backed by one process wide cache.

Settings come from :func:`filecache.config.load_settings` the first time the
cache is needed. Code that wants several independently configured caches
should construct :class:`FileCache` instances instead.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .cache import CacheResult, FileCache, Producer
from .config import load_settings
from .max_age import MaxAge


@lru_cache(maxsize=1)
def _cache() -> FileCache:
    return FileCache(load_settings())


def default_cache() -> FileCache:
    """
    Return the shared cache instance.
    """
    return _cache()


def reset_default_cache() -> None:
    """
    Drop the shared instance so the next call rebuilds it from settings.
    """
    _cache.cache_clear()


def set_directory(directory: Union[str, Path]) -> str:
    return _cache().set_directory(directory)


def set_prefix(prefix: str) -> str:
    return _cache().set_prefix(prefix)


def get_config() -> Dict[str, str]:
    return _cache().get_config()


def configure(
    prefix: Optional[str] = None, directory: Optional[Union[str, Path]] = None
) -> Dict[str, str]:
    """
    Apply whichever of ``prefix`` and ``directory`` are non-empty.
    """
    if prefix:
        set_prefix(prefix)
    if directory:
        set_directory(directory)
    return get_config()


async def has(key: str) -> bool:
    return await _cache().has(key)


async def delete(key: str) -> None:
    await _cache().delete(key)


async def get(key: str, max_age: Optional[MaxAge] = None, default: Any = None) -> Any:
    return await _cache().get(key, max_age, default)


async def put(key: str, value: Any) -> Any:
    return await _cache().put(key, value)


async def with_cache(
    key: str,
    producer: Producer,
    max_age: Optional[MaxAge],
    verbose: Optional[bool] = None,
) -> CacheResult:
    return await _cache().with_cache(key, producer, max_age, verbose)


async def keys() -> List[str]:
    return await _cache().keys()


async def clear() -> int:
    return await _cache().clear()
