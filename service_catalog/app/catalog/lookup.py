"""
Catalog lookup service: read-through cache over the local store and the
remote book source.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Optional, Set, Tuple

from shared.errors import LookupTimeoutError, NotFoundError, RepositoryError, SourceUnavailableError
from shared.logging import get_logger
from service_catalog.app.domain.item import Item, normalize_isbn, utc_now
from service_catalog.app.ports import BookSource, ItemRepository

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


SOURCE_STORE = "store"
SOURCE_REMOTE = "source"
SOURCE_STALE = "stale"


class CatalogLookupService:
    """Serves items from the local store while fresh, refreshing from the
    remote source once the sync marker ages past the freshness window.

    Refreshed items are written back in a detached task; the caller gets the
    merged item without waiting on the store.
    """

    def __init__(
        self,
        repository: ItemRepository,
        source: BookSource,
        *,
        metrics: Optional["MetricsCollector"] = None,
        clock: Optional[Callable[[], datetime]] = None,
        serve_stale_on_not_found: bool = True,
        serve_stale_on_source_error: bool = True,
        lookup_timeout: Optional[float] = None,
        coalesce_lookups: bool = False,
    ) -> None:
        self.repository = repository
        self.source = source
        self.metrics = metrics
        self.clock = clock or utc_now
        self.serve_stale_on_not_found = serve_stale_on_not_found
        self.serve_stale_on_source_error = serve_stale_on_source_error
        self.lookup_timeout = lookup_timeout
        self.coalesce_lookups = coalesce_lookups
        self.logger = get_logger("catalog.lookup")

        self._pending_writes: Set[asyncio.Task] = set()
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def get_by_isbn(self, isbn: str) -> Item:
        """Return the item for ``isbn``.

        Raises:
            ValidationError: blank ISBN
            NotFoundError: no record locally or upstream
            SourceUnavailableError: provider down and no usable stale copy
            LookupTimeoutError: ``lookup_timeout`` expired
        """
        item, _ = await self.lookup(isbn)
        return item

    async def lookup(self, isbn: str) -> Tuple[Item, str]:
        """
        Resolve an item and report which path satisfied the request:
        "store", "source", or "stale".
        """
        isbn = normalize_isbn(isbn)
        start = time.perf_counter()

        try:
            if self.lookup_timeout is None:
                item, path = await self._resolve_shared(isbn)
            else:
                item, path = await asyncio.wait_for(self._resolve_shared(isbn), timeout=self.lookup_timeout)
        except asyncio.TimeoutError:
            self.logger.error("Catalog lookup timed out", isbn=isbn, timeout=self.lookup_timeout)
            self._count("catalog_lookup_failures_total", reason="timeout")
            raise LookupTimeoutError(isbn, self.lookup_timeout)
        except NotFoundError:
            self._count("catalog_lookup_failures_total", reason="not_found")
            raise
        except SourceUnavailableError:
            self._count("catalog_lookup_failures_total", reason="source_unavailable")
            raise

        self._count("catalog_lookups_total", source=path)
        if self.metrics:
            self.metrics.observe_histogram(
                "catalog_lookup_duration_seconds", time.perf_counter() - start, source=path
            )
        return item, path

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding write-backs (shutdown, tests)."""
        if not self._pending_writes:
            return

        pending = list(self._pending_writes)
        self.logger.info("Draining write-backs", pending=len(pending))
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            self.logger.warning("Write-backs still pending after drain", pending=len(not_done))

    async def _resolve_shared(self, isbn: str) -> Tuple[Item, str]:
        if not self.coalesce_lookups:
            return await self._resolve(isbn)

        future = self._inflight.get(isbn)
        if future is None:
            future = asyncio.ensure_future(self._resolve(isbn))
            self._inflight[isbn] = future
            future.add_done_callback(lambda done, key=isbn: self._forget_inflight(key, done))
        else:
            self.logger.debug("Joining in-flight lookup", isbn=isbn)

        # shield: one caller's deadline must not cancel the shared resolution
        return await asyncio.shield(future)

    def _forget_inflight(self, isbn: str, future: asyncio.Future) -> None:
        if self._inflight.get(isbn) is future:
            del self._inflight[isbn]
        if not future.cancelled():
            # Mark the exception retrieved even if every waiter gave up
            future.exception()

    async def _resolve(self, isbn: str) -> Tuple[Item, str]:
        now = self.clock()
        local = await self._read_local(isbn)

        if local is not None and local.is_fresh(now):
            self.logger.debug("Fresh local hit", isbn=isbn)
            return local, SOURCE_STORE

        try:
            record = await self.source.fetch(isbn)
        except SourceUnavailableError as exc:
            self._count("catalog_source_fetch_total", outcome="error")
            if local is not None and self.serve_stale_on_source_error:
                self.logger.warning(
                    "Book source unavailable, serving stale copy",
                    isbn=isbn,
                    synced_at=local.synced_at.isoformat() if local.synced_at else None,
                    error=exc.message,
                )
                return local, SOURCE_STALE
            self.logger.error("Book source unavailable", isbn=isbn, error=exc.message)
            raise

        if record is None:
            self._count("catalog_source_fetch_total", outcome="not_found")
            if local is not None and self.serve_stale_on_not_found:
                self.logger.info("Book source has no record, serving stale copy", isbn=isbn)
                return local, SOURCE_STALE
            raise NotFoundError("item", isbn)

        self._count("catalog_source_fetch_total", outcome="found")
        returned = record.get("isbn")
        if returned is not None and str(returned).strip() != isbn:
            self.logger.warning("Provider returned a different ISBN", requested=isbn, returned=str(returned))

        # The requested ISBN stays the identity; local fields and the store key belong to it
        merged = Item.from_remote(record, isbn=isbn).with_local_fields(local).mark_synced(now)

        self._schedule_write_back(merged)
        return merged, SOURCE_REMOTE

    async def _read_local(self, isbn: str) -> Optional[Item]:
        try:
            return await self.repository.find(isbn)
        except RepositoryError as exc:
            # Degrade to a miss; the remote source can still answer
            self.logger.error("Local store read failed, treating as miss", isbn=isbn, error=exc.message)
            self._count("catalog_repository_errors_total", operation="find")
            return None

    def _schedule_write_back(self, item: Item) -> None:
        task = asyncio.create_task(self._write_back(item), name=f"catalog-write-back:{item.isbn}")
        self._pending_writes.add(task)
        task.add_done_callback(self._write_back_done)
        self._set_pending_gauge()

    def _write_back_done(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        self._set_pending_gauge()

    async def _write_back(self, item: Item) -> None:
        try:
            saved = await self.repository.save(item)
        except Exception as exc:
            self.logger.error("Write-back failed", isbn=item.isbn, error=str(exc))
            self._count("catalog_repository_errors_total", operation="save")
            self._count("catalog_write_back_total", status="error")
            return

        if saved is False:
            self.logger.error("Write-back not acknowledged", isbn=item.isbn)
            self._count("catalog_write_back_total", status="error")
            return

        self.logger.debug("Write-back completed", isbn=item.isbn)
        self._count("catalog_write_back_total", status="ok")

    def _count(self, metric_name: str, **labels) -> None:
        if not self.metrics:
            return
        try:
            self.metrics.increment_counter(metric_name, **labels)
        except Exception as exc:  # pragma: no cover - metrics failures never break lookups
            self.logger.debug("Failed to record metric", metric=metric_name, error=str(exc))

    def _set_pending_gauge(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("catalog_pending_write_backs", len(self._pending_writes))
