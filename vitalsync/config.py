"""
Engine configuration read from the environment (and `.env`).

Sections:
- store: which backend persists vitals and where
- sync: processing deadline and default reporting windows
- logging: level and renderer; console in development, JSON elsewhere

Invalid values fail at load time.
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class StoreConfig(BaseModel):
    """Which store backend the engine persists through."""

    backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Store adapter backend"
    )
    sqlite_path: str = Field(default="./vitalsync.db", description="SQLite database file")


class SyncConfig(BaseModel):
    """Sync processing and reporting windows."""

    deadline_seconds: float = Field(
        default=10.0, gt=0.0, description="Default deadline for a whole process_sync call"
    )
    metrics_window_days: int = Field(
        default=7, gt=0, description="Default rolling window for metrics summaries"
    )
    history_days: int = Field(default=7, gt=0, description="Default sync history window")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")

    def _backend_to_literal(val: str) -> Literal["memory", "sqlite"]:
        return "sqlite" if val.strip().lower() == "sqlite" else "memory"

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    store_config = StoreConfig(
        backend=_backend_to_literal(os.getenv("STORE_BACKEND", "memory")),
        sqlite_path=os.getenv("SQLITE_PATH", "./vitalsync.db"),
    )

    sync_config = SyncConfig(
        deadline_seconds=float(os.getenv("SYNC_DEADLINE_SECONDS", "10.0")),
        metrics_window_days=int(os.getenv("METRICS_WINDOW_DAYS", "7")),
        history_days=int(os.getenv("SYNC_HISTORY_DAYS", "7")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        store=store_config,
        sync=sync_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
