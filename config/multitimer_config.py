"""Configuration classes for the multi-timer engine.

This module provides the pydantic models describing logging, storage, engine
and default alert settings, as loaded from ``config.yaml``.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from common.timer_models import AlertConfig


class LoggingConfig(BaseModel):
    """Configuration settings for the logging system.

    Defines log level, optional file output and console output settings.
    """

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_file_max_size: int = 1024  # MB
    disable_console_logging: Optional[bool] = None
    loggers: Optional[dict[str, str]] = None


class RedisConfig(BaseModel):
    """Connection settings for the redis storage backend."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class StorageConfig(BaseModel):
    """Selects and configures the persistent store backend."""

    backend: Literal["memory", "json", "redis"] = "json"
    path: str = "~/.multitimer/state.json"
    key_prefix: str = "multitimer"
    redis: RedisConfig = Field(default_factory=RedisConfig)


class EngineConfig(BaseModel):
    """Timer engine runtime settings."""

    tick_interval: float = Field(default=1.0, gt=0)


class MultiTimerConfig(BaseModel):
    """Main configuration class aggregating every section."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    default_alert: AlertConfig = Field(default_factory=AlertConfig)
