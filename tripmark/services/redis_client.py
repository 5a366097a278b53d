"""Redis access for state shared between API processes (places session tokens)."""
import json
import logging
from typing import Any, Optional

import redis

from tripmark.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """
    JSON values under a key namespace.

    Redis errors are logged and reported as a miss (or a failed write), so a
    redis outage degrades callers to "no shared state" instead of failing them.
    """

    def __init__(self, client: Optional[redis.Redis] = None, namespace: str = "tripmark"):
        self.client = client or redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            decode_responses=True,
        )
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis GET {key} failed: {e}")
            return None
        return json.loads(raw) if raw else None

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            self.client.setex(self._key(key), ttl_seconds, json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Redis SETEX {key} failed: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis DELETE {key} failed: {e}")
            return False
        return True

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
