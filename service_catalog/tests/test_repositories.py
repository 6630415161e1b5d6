"""
Unit tests for the item repositories.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from service_catalog.app.adapters.memory_repository import InMemoryItemRepository
from service_catalog.app.adapters.redis_repository import RedisItemRepository
from service_catalog.app.domain.item import Item
from shared.errors import RepositoryError


SYNCED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def item():
    return Item.create(
        isbn="9780132350884",
        title="Clean Code",
        authors=["Robert C. Martin"],
        price=30.0,
        stock=7,
        rating=4.5,
        synced_at=SYNCED_AT,
    )


class TestRedisItemRepository:
    """Test cases for RedisItemRepository."""

    @pytest.fixture
    def repository(self):
        repository = RedisItemRepository("redis://localhost:6379/0", key_prefix="catalog:items:")
        repository._redis = AsyncMock()
        return repository

    @pytest.mark.asyncio
    async def test_save_writes_persistence_form(self, repository, item):
        result = await repository.save(item)

        assert result is True
        repository._redis.set.assert_awaited_once()
        key, payload = repository._redis.set.call_args[0]
        assert key == "catalog:items:9780132350884"
        assert json.loads(payload)["synced_at"] == "2024-06-01T12:00:00.000Z"
        assert "ex" not in repository._redis.set.call_args[1]

    @pytest.mark.asyncio
    async def test_find_returns_item(self, repository, item):
        repository._redis.get.return_value = json.dumps(item.to_dict(include_sync_marker=True))

        result = await repository.find("9780132350884")

        assert result == item
        repository._redis.get.assert_awaited_once_with("catalog:items:9780132350884")

    @pytest.mark.asyncio
    async def test_find_missing_returns_none(self, repository):
        repository._redis.get.return_value = None

        assert await repository.find("missing") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", "[1, 2]", json.dumps({"title": "no isbn"})])
    async def test_find_malformed_payload_is_a_miss(self, repository, payload):
        repository._redis.get.return_value = payload

        assert await repository.find("9780132350884") is None

    @pytest.mark.asyncio
    async def test_find_redis_error(self, repository):
        repository._redis.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(RepositoryError) as exc_info:
            await repository.find("9780132350884")

        assert exc_info.value.code == "REPOSITORY_ERROR"
        assert exc_info.value.details["key"] == "catalog:items:9780132350884"

    @pytest.mark.asyncio
    async def test_save_redis_error(self, repository, item):
        repository._redis.set.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(RepositoryError):
            await repository.save(item)

    @pytest.mark.asyncio
    async def test_ping(self, repository):
        repository._redis.ping.return_value = True

        assert await repository.ping() is True

    @pytest.mark.asyncio
    async def test_ping_failure(self, repository):
        repository._redis.ping.side_effect = RedisConnectionError("connection refused")

        assert await repository.ping() is False

    @pytest.mark.asyncio
    async def test_close(self, repository):
        await repository.close()

        repository._redis.aclose.assert_awaited_once()


class TestInMemoryItemRepository:
    """Test cases for InMemoryItemRepository."""

    @pytest.fixture
    def repository(self):
        return InMemoryItemRepository()

    @pytest.mark.asyncio
    async def test_save_and_find(self, repository, item):
        assert await repository.save(item) is True

        assert await repository.find("9780132350884") == item
        assert len(repository) == 1
        assert "9780132350884" in repository

    @pytest.mark.asyncio
    async def test_find_missing(self, repository):
        assert await repository.find("missing") is None

    @pytest.mark.asyncio
    async def test_save_overwrites(self, repository, item):
        await repository.save(item)
        await repository.save(Item.create(isbn="9780132350884", title="Second edition"))

        result = await repository.find("9780132350884")

        assert result.title == "Second edition"
        assert result.synced_at is None
        assert len(repository) == 1

    @pytest.mark.asyncio
    async def test_ping(self, repository):
        assert await repository.ping() is True
