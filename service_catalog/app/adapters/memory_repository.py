"""
In-memory item repository for local runs and tests.
"""

import asyncio
from typing import Any, Dict, Optional

from service_catalog.app.domain.item import Item


class InMemoryItemRepository:
    """Dict-backed repository holding the persistence form of each item."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def find(self, isbn: str) -> Optional[Item]:
        record = self._records.get(isbn)
        if record is None:
            return None
        return Item.from_dict(record)

    async def save(self, item: Item) -> bool:
        async with self._lock:
            self._records[item.isbn] = item.to_dict(include_sync_marker=True)
        return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, isbn: str) -> bool:
        return isbn in self._records
