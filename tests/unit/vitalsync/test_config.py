"""
Tests for configuration management in `vitalsync/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level and store backend coercion to the expected Literals
- Sync window overrides
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from vitalsync.config import AppConfig, LoggingConfig, StoreConfig, SyncConfig, get_config, load_config_from_env


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    for name in ("STORE_BACKEND", "LOG_LEVEL", "SYNC_DEADLINE_SECONDS", "METRICS_WINDOW_DAYS"):
        monkeypatch.delenv(name, raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.logging.level == "INFO"
    assert config.store.backend == "memory"
    assert config.sync.deadline_seconds == 10.0
    assert config.sync.metrics_window_days == 7


def test_production_uses_json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_store_backend_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORE_BACKEND", "SQLite")
    monkeypatch.setenv("SQLITE_PATH", "/tmp/vitals.db")

    config = load_config_from_env()

    assert config.store.backend == "sqlite"
    assert config.store.sqlite_path == "/tmp/vitals.db"

    monkeypatch.setenv("STORE_BACKEND", "postgres")
    assert load_config_from_env().store.backend == "memory"


def test_sync_windows_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_DEADLINE_SECONDS", "2.5")
    monkeypatch.setenv("METRICS_WINDOW_DAYS", "30")
    monkeypatch.setenv("SYNC_HISTORY_DAYS", "14")

    config = load_config_from_env()

    assert config.sync.deadline_seconds == 2.5
    assert config.sync.metrics_window_days == 30
    assert config.sync.history_days == 14


def test_non_positive_windows_fail_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_WINDOW_DAYS", "0")

    with pytest.raises(ValueError):
        load_config_from_env()


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(
            environment="production",
            debug=True,
            store=StoreConfig(),
            sync=SyncConfig(),
            logging=LoggingConfig(),
        )
