"""
Repository port - read/write access to the local item store.
"""

from typing import Optional, Protocol

from service_catalog.app.domain.item import Item


class ItemRepository(Protocol):
    """
    Interface for the local item store.

    Implementations must not leak store-specific exceptions: every store
    failure is raised as ``shared.errors.RepositoryError``.
    """

    async def find(self, isbn: str) -> Optional[Item]:
        """
        Look up an item by ISBN

        Args:
            isbn: Normalized ISBN

        Returns:
            The stored Item, or None on a clean miss

        Raises:
            RepositoryError: If the store cannot be read
        """
        ...

    async def save(self, item: Item) -> bool:
        """
        Upsert an item keyed by its ISBN

        Safe to call concurrently for the same ISBN; the last write wins.

        Args:
            item: Item to persist, including its synchronization marker

        Returns:
            True when the write was acknowledged

        Raises:
            RepositoryError: If the store rejects the write
        """
        ...
