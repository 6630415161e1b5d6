"""
Catalog service for the Catalog Access Layer.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import Path

from shared.base_service import BaseService
from shared.circuit_breaker import CircuitBreaker
from shared.config import ServiceConfig
from service_catalog.app.adapters import HttpBookSource, InMemoryItemRepository, RedisItemRepository
from service_catalog.app.catalog import CatalogLookupService, SOURCE_REMOTE


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("catalog", 8020, config=config)

        if self.config.store_backend == "memory":
            self.repository = InMemoryItemRepository()
            self.logger.warning("Using in-memory item store; data is lost on restart")
        else:
            self.repository = RedisItemRepository(
                self.config.redis_url,
                key_prefix=self.config.store_key_prefix,
            )

        self.book_source = HttpBookSource(
            self.config.book_source_url,
            timeout=self.config.book_source_timeout_seconds,
            api_key=self.config.book_source_api_key,
            circuit_breaker=CircuitBreaker(
                name="book_source",
                failure_threshold=self.config.source_failure_threshold,
                recovery_timeout=self.config.source_recovery_timeout_seconds,
            ),
        )

        self.lookup_service = CatalogLookupService(
            self.repository,
            self.book_source,
            metrics=self.metrics,
            serve_stale_on_not_found=self.config.serve_stale_on_not_found,
            serve_stale_on_source_error=self.config.serve_stale_on_source_error,
            lookup_timeout=self.config.lookup_timeout_seconds,
            coalesce_lookups=self.config.coalesce_lookups,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.lookup_service.drain(timeout=self.config.write_back_drain_timeout_seconds)
            await self.repository.close()

        self._setup_catalog_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    def _setup_catalog_routes(self):
        """Set up catalog-specific routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Lightweight liveness endpoint with dependency status."""
            dependencies = await self._check_dependencies()
            status = "ok" if all(value == "ok" for value in dependencies.values()) else "error"
            return {
                "service": self.service_name,
                "status": status,
                "dependencies": dependencies,
                "circuit_breaker": self.book_source.circuit_breaker.get_state(),
                "pending_write_backs": self.lookup_service.pending_writes,
                "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            }

        @self.app.get("/items/{isbn}")
        async def get_item(isbn: str = Path(..., min_length=1, max_length=64)):
            """Return the catalog item for an ISBN, refreshing it when stale."""
            item, source = await self.lookup_service.lookup(isbn)

            payload = item.to_dict()
            payload["source"] = source
            payload["cached"] = source != SOURCE_REMOTE
            return payload

    async def _check_dependencies(self) -> Dict[str, str]:
        store_ok = await self.repository.ping()
        source_ok = await self.book_source.ping()
        return {
            "store": "ok" if store_ok else "error",
            "book_source": "ok" if source_ok else "error",
        }


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = CatalogService(config)
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()
