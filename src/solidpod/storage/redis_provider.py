"""
Redis Credential Store.

Redis-backed store shared by every worker of a deployment, so a DPoP key
pair created by one process is the one every other process signs with.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis

from solidpod.exceptions import StorageError

from .provider import CredentialStore, StoreConfig

logger = logging.getLogger(__name__)


class RedisCredentialStore(CredentialStore):
    """
    Redis credential store.

    Args:
        config: Store configuration (``redis_url``, ``prefix``, timeout).
        client: Optional pre-built ``redis.Redis`` client (e.g. ``fakeredis``).
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        client: Optional[redis.Redis] = None,
    ) -> None:
        super().__init__(config)
        if client is None:
            client = redis.Redis.from_url(
                self.config.redis_url,
                decode_responses=True,
                socket_timeout=self.config.timeout_seconds,
                socket_connect_timeout=self.config.timeout_seconds,
            )
        self._client = client

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            logger.debug("Redis health check failed", exc_info=True)
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis GET failed for {key}: {e}") from e

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            self._client.set(self._key(key), value, ex=ttl_seconds)
        except redis.RedisError as e:
            raise StorageError(f"Redis SET failed for {key}: {e}") from e

    def set_if_absent(self, key: str, value: str) -> bool:
        try:
            return bool(self._client.set(self._key(key), value, nx=True))
        except redis.RedisError as e:
            raise StorageError(f"Redis SET NX failed for {key}: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            return self._client.delete(self._key(key)) > 0
        except redis.RedisError as e:
            raise StorageError(f"Redis DEL failed for {key}: {e}") from e

    def scan_prefix(self, prefix: str) -> dict[str, str]:
        pattern = f"{self._key(prefix)}*"
        result: dict[str, str] = {}
        try:
            for full_key in self._client.scan_iter(match=pattern):
                value = self._client.get(full_key)
                if value is not None:
                    result[self._strip(full_key)] = value
        except redis.RedisError as e:
            raise StorageError(f"Redis SCAN failed for {prefix}: {e}") from e
        return result
