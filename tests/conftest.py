"""Shared test fixtures for agricache.

Provides a manually advanced clock, in-memory stores, a cache engine wired
to both, isolated XDG configuration directories, and a CLI runner.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from agricache.cache import CacheEngine
from agricache.exceptions import QuotaExceededError
from agricache.output import reset_output
from agricache.store import MemoryStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FlakyStore(MemoryStore):
    """MemoryStore whose next ``fail_writes`` calls to set_item raise."""

    def __init__(self, fail_writes: int = 0, quota: Optional[int] = None) -> None:
        super().__init__(quota=quota)
        self.fail_writes = fail_writes
        self.write_attempts = 0

    def set_item(self, key: str, value: str) -> None:
        self.write_attempts += 1
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise QuotaExceededError("store is full")
        super().set_item(key, value)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once a CliRunner invocation ends.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock, store and engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def engine(store: MemoryStore, clock: FakeClock) -> CacheEngine:
    """Engine over an unbounded MemoryStore with a fake clock."""
    return CacheEngine(store, clock=clock)


@pytest.fixture
def flaky_store() -> type[FlakyStore]:
    """The FlakyStore class, for tests that need write failures."""
    return FlakyStore


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path, forces the XDG code path, clears all
    AGRICACHE_* environment variables and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("agricache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "AGRICACHE_CACHE_DIR",
        "AGRICACHE_STORE_BACKEND",
        "AGRICACHE_MAX_SIZE",
        "AGRICACHE_DEFAULT_TTL_MS",
        "AGRICACHE_PROBE_URL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
