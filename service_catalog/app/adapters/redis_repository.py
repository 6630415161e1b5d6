"""
Redis-backed item repository.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import RepositoryError, ValidationError
from shared.logging import get_logger
from service_catalog.app.domain.item import Item


class RedisItemRepository:
    """Stores items as JSON documents under ``{key_prefix}:{isbn}``.

    Keys carry no TTL; staleness is decided by the item's sync marker.
    """

    def __init__(self, redis_url: str, *, key_prefix: str = "catalog:items") -> None:
        self.redis_url = redis_url
        self.key_prefix = key_prefix.rstrip(":")
        self.logger = get_logger("catalog.repository.redis")
        self._redis = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    async def find(self, isbn: str) -> Optional[Item]:
        key = self._key(isbn)
        try:
            value = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            self.logger.error("Redis read failed", key=key, error=str(exc))
            raise RepositoryError(f"Failed to read item '{isbn}'", {"key": key, "error": str(exc)}) from exc

        if not value:
            return None

        try:
            return Item.from_dict(json.loads(value))
        except (json.JSONDecodeError, TypeError, AttributeError, ValidationError) as exc:
            self.logger.warning("Discarding malformed item payload", key=key, error=str(exc))
            return None

    async def save(self, item: Item) -> bool:
        key = self._key(item.isbn)
        payload = json.dumps(item.to_dict(include_sync_marker=True))
        try:
            await self._redis.set(key, payload)
        except (RedisError, OSError) as exc:
            self.logger.error("Redis write failed", key=key, error=str(exc))
            raise RepositoryError(f"Failed to save item '{item.isbn}'", {"key": key, "error": str(exc)}) from exc

        self.logger.debug("Item saved", key=key)
        return True

    async def ping(self) -> bool:
        """Return True when Redis responds to a ping."""
        try:
            return bool(await self._redis.ping())
        except Exception as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))

    def _key(self, isbn: str) -> str:
        return f"{self.key_prefix}:{isbn}"
