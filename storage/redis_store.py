"""Redis-backed timer store.

Key layout (``prefix`` defaults to ``multitimer``):

- ``<prefix>:timers``        JSON array with the whole timer collection
- ``<prefix>:runtime:<id>``  JSON object with the runtime record of one timer
- ``<prefix>:next_id``       next identifier to hand out
"""

import json
import logging
import os
from typing import Any, Optional

import redis

from storage.base import TimerStore

logger = logging.getLogger(__name__)


def redis_connection_settings(
    host: str = "localhost",
    port: int = 6379,
    db: int = 0,
    password: Optional[str] = None,
) -> dict[str, Any]:
    """Build redis client settings with environment variable overrides.

    ``REDIS_HOST``, ``REDIS_PORT``, ``REDIS_DB`` and ``REDIS_PASSWORD`` always
    take precedence over the configured values.
    """
    settings = {
        "host": host,
        "port": port,
        "db": db,
        "password": password,
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
    }

    env_overrides = {
        "host": os.getenv("REDIS_HOST"),
        "port": os.getenv("REDIS_PORT"),
        "db": os.getenv("REDIS_DB"),
        "password": os.getenv("REDIS_PASSWORD"),
    }
    for key, value in env_overrides.items():
        if value is not None:
            if key in ["port", "db"]:
                settings[key] = int(value)
            else:
                settings[key] = value

    return settings


class RedisTimerStore(TimerStore):
    """Timer store persisted in Redis string keys."""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        key_prefix: str = "multitimer",
        **connection,
    ):
        """Initialize the store.

        Args:
            client: Existing redis client; built from ``connection`` if omitted
            key_prefix: Namespace prepended to every key
            **connection: host/port/db/password forwarded to
                redis_connection_settings
        """
        self.redis = client or redis.Redis(**redis_connection_settings(**connection))
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def _read(self, key: str) -> Optional[Any]:
        raw = self.redis.get(self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return json.loads(raw)

    def _write(self, key: str, value: Any) -> None:
        self.redis.set(self._key(key), json.dumps(value))

    def _delete(self, key: str) -> None:
        self.redis.delete(self._key(key))
