"""
Unit tests for Catalog main service.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from service_catalog.app.main import CatalogService, create_app
from service_catalog.app.adapters import InMemoryItemRepository, RedisItemRepository
from service_catalog.app.domain.item import Item
from shared.config import get_config
from shared.errors import SourceUnavailableError


class TestCatalogService:
    """Test cases for CatalogService."""

    @pytest.fixture
    def config(self):
        return get_config("catalog", 8020, store_backend="memory", book_source_url="http://books.test")

    @pytest.fixture
    def app(self, config):
        """Create FastAPI app instance."""
        return create_app(config)

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        with TestClient(app) as client:
            yield client

    @pytest.fixture
    def service(self, client):
        return client.app.state.catalog_service

    @pytest.fixture
    def mock_source(self, service):
        source = AsyncMock()
        source.fetch.return_value = {
            "isbn": "9780132350884",
            "title": "Clean Code",
            "authors": ["Robert C. Martin"],
            "publisher": "Prentice Hall",
        }
        service.lookup_service.source = source
        return source

    def seed(self, client, service, **fields):
        client.portal.call(service.repository.save, Item.create(**fields))

    def test_memory_backend_selected(self, service):
        assert isinstance(service.repository, InMemoryItemRepository)
        assert service.book_source.base_url == "http://books.test"

    def test_redis_backend_is_default(self):
        service = CatalogService(get_config("catalog", 8020))

        assert isinstance(service.repository, RedisItemRepository)
        assert service.repository.key_prefix == "catalog:items"

    def test_lookup_policy_from_config(self):
        service = CatalogService(get_config(
            "catalog", 8020,
            store_backend="memory",
            lookup_timeout_seconds=2.5,
            coalesce_lookups=True,
            serve_stale_on_not_found=False,
            source_failure_threshold=7,
        ))

        assert service.lookup_service.lookup_timeout == 2.5
        assert service.lookup_service.coalesce_lookups is True
        assert service.lookup_service.serve_stale_on_not_found is False
        assert service.book_source.circuit_breaker.failure_threshold == 7

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        with patch.object(CatalogService, "_check_dependencies", AsyncMock(return_value={"store": "ok", "book_source": "ok"})):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "catalog"
        assert data["status"] == "ok"
        assert data["dependencies"]["store"] == "ok"

    def test_healthz_reports_degraded_dependency(self, client):
        with patch.object(CatalogService, "_check_dependencies", AsyncMock(return_value={"store": "ok", "book_source": "error"})):
            response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "error"
        assert data["circuit_breaker"]["state"] == "closed"
        assert data["pending_write_backs"] == 0
        assert data["timestamp"].endswith("Z")

    def test_get_item_from_source(self, client, service, mock_source):
        response = client.get("/items/9780132350884")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Clean Code"
        assert data["authors"] == ["Robert C. Martin"]
        assert data["price"] == 0.0
        assert data["source"] == "source"
        assert data["cached"] is False
        assert "synced_at" not in data
        assert "X-Request-ID" in response.headers

    def test_get_item_fresh_from_store(self, client, service, mock_source):
        self.seed(
            client, service,
            isbn="9780132350884", title="Stored", price=30.0, stock=7, rating=4.5,
            synced_at=datetime.now(timezone.utc) - timedelta(hours=2),
        )

        response = client.get("/items/9780132350884")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Stored"
        assert data["source"] == "store"
        assert data["cached"] is True
        mock_source.fetch.assert_not_awaited()

    def test_get_item_not_found(self, client, mock_source):
        mock_source.fetch.return_value = None

        response = client.get("/items/missing")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_FOUND"
        assert data["details"]["identity"] == "missing"

    def test_get_item_source_unavailable(self, client, mock_source):
        mock_source.fetch.side_effect = SourceUnavailableError("book_source", "connection refused")

        response = client.get("/items/9780132350884")

        assert response.status_code == 503
        assert response.json()["code"] == "SOURCE_UNAVAILABLE"

    def test_get_item_stale_when_source_unavailable(self, client, service, mock_source):
        self.seed(
            client, service,
            isbn="9780132350884", title="Stored",
            synced_at=datetime.now(timezone.utc) - timedelta(days=3),
        )
        mock_source.fetch.side_effect = SourceUnavailableError("book_source", "connection refused")

        response = client.get("/items/9780132350884")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Stored"
        assert data["source"] == "stale"
        assert data["cached"] is True

    def test_get_item_blank_isbn(self, client, mock_source):
        response = client.get("/items/%20%20")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        mock_source.fetch.assert_not_awaited()

    def test_metrics_endpoint(self, client, mock_source):
        client.get("/items/9780132350884")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "catalog_lookups_total" in response.text
