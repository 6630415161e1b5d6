"""
External source port - authoritative book metadata from a remote provider.
"""

from typing import Any, Dict, Optional, Protocol


class BookSource(Protocol):
    """Interface for remote book metadata providers."""

    async def fetch(self, isbn: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the provider record for an ISBN

        Args:
            isbn: Normalized ISBN

        Returns:
            The provider record (field names per REMOTE_FIELD_MAP), or None
            when the provider does not know the ISBN

        Raises:
            SourceUnavailableError: On timeouts, connection failures and any
                non-success response other than a clean "not found"
        """
        ...
