"""Persistent store backends for timers and runtime records."""

import logging

from config.multitimer_config import StorageConfig
from storage.base import InMemoryTimerStore, TimerStore
from storage.json_store import JsonFileTimerStore
from storage.redis_store import RedisTimerStore

logger = logging.getLogger(__name__)


def create_timer_store(storage_config: StorageConfig) -> TimerStore:
    """Build the store selected by the storage configuration.

    Args:
        storage_config: Storage section of the configuration

    Returns:
        TimerStore: The configured backend
    """
    backend = storage_config.backend
    logger.info(f"Using '{backend}' timer store")

    if backend == "memory":
        return InMemoryTimerStore()
    if backend == "json":
        return JsonFileTimerStore(storage_config.path)
    if backend == "redis":
        return RedisTimerStore(
            key_prefix=storage_config.key_prefix,
            **storage_config.redis.model_dump(),
        )
    raise ValueError(f"Unknown storage backend '{backend}'")


__all__ = [
    "TimerStore",
    "InMemoryTimerStore",
    "JsonFileTimerStore",
    "RedisTimerStore",
    "create_timer_store",
]
