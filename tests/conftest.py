"""Shared test fixtures for the TaskBrain test suite."""

import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from pydantic import SecretStr

from taskbrain.config.models.intelligence import IntelligenceConfig
from taskbrain.config.models.notifications import NotificationConfig
from taskbrain.config.models.sync import SyncConfig
from taskbrain.intelligence.engine import IntelligenceEngine
from taskbrain.sync.notifier import ChangeNotifier
from taskbrain.sync.pipeline import SyncPipeline
from taskbrain.tasks.cache import InMemoryTaskCache
from taskbrain.tasks.repository import TaskRepository
from taskbrain.tasks.stores.inmemory import InMemoryTaskStore
from tests.fakes import FakeCalendar, FakeClock

# Monday 2025-03-10, 10:00 UTC
NOW = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)

TODOIST_SECRET = "todoist-test-secret"
LINEAR_SECRET = "linear-test-secret"
LINEAR_USER_ID = "user-1"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryTaskCache:
    return InMemoryTaskCache(ttl_seconds=3600, clock=clock)


@pytest.fixture
def repository(
    store: InMemoryTaskStore, cache: InMemoryTaskCache, clock: FakeClock
) -> TaskRepository:
    return TaskRepository(store, cache, clock=clock)


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def engine(repository: TaskRepository, calendar: FakeCalendar) -> IntelligenceEngine:
    return IntelligenceEngine(repository, calendar, IntelligenceConfig())


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        todoist_webhook_secret=SecretStr(TODOIST_SECRET),
        linear_webhook_secret=SecretStr(LINEAR_SECRET),
        linear_user_id=LINEAR_USER_ID,
        poll_enabled=False,
    )


@pytest.fixture
def notifier(clock: FakeClock) -> ChangeNotifier:
    """Notifier with no endpoint configured (disabled)."""
    return ChangeNotifier(NotificationConfig(), clock=clock)


@pytest.fixture
def pipeline(
    repository: TaskRepository,
    engine: IntelligenceEngine,
    notifier: ChangeNotifier,
    sync_config: SyncConfig,
) -> SyncPipeline:
    return SyncPipeline(repository, engine, notifier, sync_config)


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory."""

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Temporarily set environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"TASKBRAIN_DEBUG": "true"}):
                ...
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    from taskbrain.config import get_settings
    from taskbrain.config.settings import set_toml_config

    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})
