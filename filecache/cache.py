"""
Disk backed JSON cache with time based expiry.

Every entry lives in its own ``<directory>/<prefix><key>.cache.json`` file and
the file's modification time is the only record of when it was written.
Blocking filesystem calls run in a worker thread so the public coroutines can
be awaited from an event loop without stalling it.
"""
from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
import os
import stat
import time
import uuid
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .config import CacheSettings
from .exceptions import DeserializationError, SerializationError, StorageError
from .max_age import MaxAge, max_age_to_ms

LOGGER = logging.getLogger(__name__)

SUFFIX = ".cache.json"

# Returned by get(default=MISSING) for absent or stale entries, so a stored
# JSON null can be told apart from a miss.
MISSING: Any = object()

Producer = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class CacheResult:
    """
    Outcome of :meth:`FileCache.with_cache`.
    """

    from_cache: bool
    value: Any
    elapsed_ms: float


class FileCache:
    """
    Persist JSON serialisable payloads on disk, one file per key.

    Keys and the prefix are embedded in file names as they are; callers must
    keep them filesystem safe.
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._settings = settings or CacheSettings.from_env()
        self._clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    def set_directory(self, directory: Union[str, Path]) -> str:
        self._settings = self._settings.with_directory(str(directory))
        return self._settings.directory

    def set_prefix(self, prefix: str) -> str:
        self._settings = self._settings.with_prefix(prefix)
        return self._settings.prefix

    def get_config(self) -> Dict[str, str]:
        return self._settings.as_dict()

    def file_path(self, key: str) -> Path:
        return Path(self._settings.directory) / f"{self._settings.prefix}{key}{SUFFIX}"

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    async def has(self, key: str) -> bool:
        """
        Return True when a regular file exists for ``key``.
        """
        info = await asyncio.to_thread(_stat, self.file_path(key))
        return info is not None and stat.S_ISREG(info.st_mode)

    async def delete(self, key: str) -> None:
        """
        Remove the entry for ``key``. Deleting a missing entry is not an error.
        """
        path = self.file_path(key)
        async with self._lock_for(path):
            await asyncio.to_thread(_unlink, path)

    async def get(
        self, key: str, max_age: Optional[MaxAge] = None, default: Any = None
    ) -> Any:
        """
        Retrieve the cached value, or ``default`` when missing or older than ``max_age``.

        Stale files are left in place. A file that is not valid JSON raises
        :class:`DeserializationError` rather than counting as a miss.
        """
        path = self.file_path(key)
        limit = max_age_to_ms(max_age) if max_age is not None else None
        info = await asyncio.to_thread(_stat, path)
        if info is None or not stat.S_ISREG(info.st_mode):
            return default

        if limit is not None:
            age_ms = (self._clock() - info.st_mtime) * 1000
            if age_ms > limit:
                return default

        return await asyncio.to_thread(_read_json, path, default)

    async def put(self, key: str, value: Any) -> Any:
        """
        Store ``value`` under ``key`` and return it unchanged.
        """
        path = self.file_path(key)
        text = _dumps(value)
        async with self._lock_for(path):
            await asyncio.to_thread(_write_text, path, text)
        return value

    async def with_cache(
        self,
        key: str,
        producer: Producer,
        max_age: Optional[MaxAge],
        verbose: Optional[bool] = None,
    ) -> CacheResult:
        """
        Return the cached value for ``key`` or produce, store and return a fresh one.

        ``producer`` takes no arguments and may return a plain value or an
        awaitable. It is only called on a miss. Concurrent calls on this
        instance for the same key call it at most once between them.
        """
        started = time.perf_counter()
        if verbose is None:
            verbose = self._settings.verbose
        level = logging.INFO if verbose else logging.DEBUG

        cached = await self.get(key, max_age, MISSING)
        if cached is MISSING:
            path = self.file_path(key)
            async with self._lock_for(path):
                cached = await self.get(key, max_age, MISSING)
                if cached is MISSING:
                    fresh = producer()
                    if inspect.isawaitable(fresh):
                        fresh = await fresh
                    text = _dumps(fresh)
                    await asyncio.to_thread(_write_text, path, text)
                    elapsed = (time.perf_counter() - started) * 1000
                    LOGGER.log(level, "Cache miss for %s. Got fresh data. Took %.1fms", key, elapsed)
                    return CacheResult(from_cache=False, value=fresh, elapsed_ms=elapsed)

        elapsed = (time.perf_counter() - started) * 1000
        LOGGER.log(level, "Cache hit for %s. Took %.1fms", key, elapsed)
        return CacheResult(from_cache=True, value=cached, elapsed_ms=elapsed)

    async def keys(self) -> List[str]:
        """
        Keys stored under the current prefix, sorted.
        """
        prefix = self._settings.prefix
        names = await asyncio.to_thread(_entry_names, Path(self._settings.directory), prefix)
        return sorted(name[len(prefix):-len(SUFFIX)] for name in names)

    async def clear(self) -> int:
        """
        Remove all entries under the current prefix and return how many went.
        """
        directory = Path(self._settings.directory)
        names = await asyncio.to_thread(_entry_names, directory, self._settings.prefix)
        for name in names:
            await asyncio.to_thread(_unlink, directory / name)
        if names:
            LOGGER.debug("Cleared %d cache entries from %s", len(names), directory)
        return len(names)

    def _lock_for(self, path: Path) -> asyncio.Lock:
        lock_key = str(path)
        lock = self._locks.get(lock_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[lock_key] = lock
        return lock


def _stat(path: Path) -> Optional[os.stat_result]:
    try:
        return path.stat()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StorageError(f"Unable to stat cache file {path}: {exc}", path=str(path)) from exc


def _unlink(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StorageError(f"Unable to delete cache file {path}: {exc}", path=str(path)) from exc


def _read_json(path: Path, default: Any = None) -> Any:
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        # removed between stat and read
        return default
    except OSError as exc:
        raise StorageError(f"Unable to read cache file {path}: {exc}", path=str(path)) from exc
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DeserializationError(
            f"Cache file {path} does not contain valid JSON: {exc}", path=str(path)
        ) from exc


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(f"Value is not JSON serialisable: {exc}") from exc


def _write_text(path: Path, text: str) -> None:
    tmp_path = Path(f"{path}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            handle.write(text)
        tmp_path.replace(path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise StorageError(f"Unable to write cache file {path}: {exc}", path=str(path)) from exc


def _entry_names(directory: Path, prefix: str) -> List[str]:
    try:
        with os.scandir(directory) as entries:
            return [
                entry.name
                for entry in entries
                if entry.name.startswith(prefix)
                and entry.name.endswith(SUFFIX)
                and entry.is_file()
            ]
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise StorageError(f"Unable to list cache directory {directory}: {exc}", path=str(directory)) from exc
