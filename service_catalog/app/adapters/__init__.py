"""
Adapters package for the Catalog Service.

Concrete implementations of the ports in ``app.ports``:

- RedisItemRepository / InMemoryItemRepository: local item store
- HttpBookSource: remote book metadata provider over HTTP

Adapters normalize backend failures into shared errors and never let
library-specific exceptions cross the port boundary.
"""

from .book_source_client import HttpBookSource
from .memory_repository import InMemoryItemRepository
from .redis_repository import RedisItemRepository

__all__ = [
    "HttpBookSource",
    "InMemoryItemRepository",
    "RedisItemRepository",
]
