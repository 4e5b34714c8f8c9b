"""
Configuration helpers for the file cache.
"""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import CacheConfigError

_ENV_LOADED = False
_TRUTHY = {"1", "true", "yes", "on"}


def _env_files() -> List[Path]:
    """
    .env files to consult, most specific first.
    """
    explicit = os.getenv("FILECACHE_ENV_FILE")
    paths = [Path(explicit)] if explicit else []
    for candidate in (Path.cwd() / ".env", Path(__file__).resolve().parents[1] / ".env"):
        if candidate not in paths:
            paths.append(candidate)
    return [path for path in paths if path.is_file()]


def _parse_env_file(path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.strip().partition("=")
        name = name.strip()
        if not sep or not name or name.startswith("#"):
            continue
        values[name] = value.strip().strip("\"'")
    return values


def _ensure_env_loaded() -> None:
    """
    Copy .env values into the environment once; real variables take precedence.
    """
    global _ENV_LOADED  # noqa: PLW0603 - intentional module level state
    if _ENV_LOADED:
        return
    for path in _env_files():
        try:
            parsed = _parse_env_file(path)
        except (OSError, UnicodeDecodeError):
            continue
        for name, value in parsed.items():
            os.environ.setdefault(name, value)
    _ENV_LOADED = True


def default_directory() -> str:
    """
    Platform temp directory, or the package directory when none is usable.
    """
    try:
        return tempfile.gettempdir()
    except OSError:
        return str(Path(__file__).resolve().parent)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class CacheSettings:
    """
    Where a cache keeps its entries and how file names are prefixed.
    """

    directory: str
    prefix: str = ""
    # Log hits and misses of with_cache at INFO instead of DEBUG.
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "CacheSettings":
        """
        Construct settings using environment variables with sensible defaults.
        """
        _ensure_env_loaded()
        return cls(
            directory=os.getenv("FILECACHE_DIR") or default_directory(),
            prefix=os.getenv("FILECACHE_PREFIX", ""),
            verbose=_as_bool(os.getenv("FILECACHE_VERBOSE", "")),
        )

    @classmethod
    def from_file(cls, path: Path) -> "CacheSettings":
        """
        Read settings from a YAML mapping with ``directory``, ``prefix`` and
        ``verbose`` keys. Missing keys fall back to the environment defaults.
        """
        raw = _load_yaml(Path(path))
        base = cls.from_env()
        prefix = raw.get("prefix", base.prefix)
        return cls(
            directory=str(raw.get("directory") or base.directory),
            prefix="" if prefix is None else str(prefix),
            verbose=_as_bool(raw.get("verbose", base.verbose)),
        )

    def with_directory(self, directory: str) -> "CacheSettings":
        return replace(self, directory=str(directory))

    def with_prefix(self, prefix: str) -> "CacheSettings":
        return replace(self, prefix=prefix)

    def as_dict(self) -> Dict[str, str]:
        return {"directory": self.directory, "prefix": self.prefix}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Cache settings file not found at {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise CacheConfigError(f"Cache settings in {path} must be a mapping")
    return raw


def load_settings(path: Optional[Path] = None) -> CacheSettings:
    """
    Settings from an explicit file, ``FILECACHE_CONFIG_FILE``, or the environment.
    """
    _ensure_env_loaded()
    config_path = path or os.getenv("FILECACHE_CONFIG_FILE")
    if config_path:
        return CacheSettings.from_file(Path(config_path))
    return CacheSettings.from_env()
