from __future__ import annotations

import pytest

from filecache import config


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # keep a developer's .env and FILECACHE_* variables out of the tests
    monkeypatch.setattr(config, "_ENV_LOADED", True)
    for name in (
        "FILECACHE_DIR",
        "FILECACHE_PREFIX",
        "FILECACHE_VERBOSE",
        "FILECACHE_ENV_FILE",
        "FILECACHE_CONFIG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
