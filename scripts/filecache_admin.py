#!/usr/bin/env python
"""
CLI entrypoint to inspect and prune file cache entries.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from filecache import MISSING, CacheError, FileCache, load_settings


LOGGER = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect, delete and clear entries of a file cache directory.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML settings file (defaults to FILECACHE_CONFIG_FILE, then the environment).",
    )
    parser.add_argument(
        "--directory",
        type=str,
        help="Cache directory (overrides FILECACHE_DIR).",
    )
    parser.add_argument(
        "--prefix",
        type=str,
        help="Key prefix (overrides FILECACHE_PREFIX).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Print the keys stored under the prefix.")
    show = commands.add_parser("show", help="Print the JSON stored for a key.")
    show.add_argument("key")
    show.add_argument("--max-age", help="Treat entries older than this as missing, e.g. '15 minutes'.")
    delete = commands.add_parser("delete", help="Remove the entry for a key.")
    delete.add_argument("key")
    commands.add_parser("clear", help="Remove every entry under the prefix.")
    return parser


async def _run(cache: FileCache, args: argparse.Namespace) -> int:
    if args.command == "list":
        for key in await cache.keys():
            print(key)
        return 0
    if args.command == "show":
        value = await cache.get(args.key, args.max_age, MISSING)
        if value is MISSING:
            LOGGER.warning("No fresh entry for %s in %s", args.key, cache.settings.directory)
            return 1
        print(json.dumps(value, indent=2))
        return 0
    if args.command == "delete":
        await cache.delete(args.key)
        LOGGER.info("Deleted %s", cache.file_path(args.key))
        return 0
    removed = await cache.clear()
    LOGGER.info("Removed %s entries from %s", removed, cache.settings.directory)
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    level = getattr(logging, str(args.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(Path(args.config) if args.config else None)
    if args.directory:
        settings = settings.with_directory(args.directory)
    if args.prefix is not None:
        settings = settings.with_prefix(args.prefix)
    cache = FileCache(settings)

    try:
        return asyncio.run(_run(cache, args))
    except CacheError as exc:
        LOGGER.error("Cache command failed: %s", exc, exc_info=level <= logging.DEBUG)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
