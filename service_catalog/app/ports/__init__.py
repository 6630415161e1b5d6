"""
Ports consumed by the catalog lookup service.

The lookup service depends only on these contracts; concrete adapters in
``app.adapters`` implement them and are injected at construction time.
"""

from .external_source import BookSource
from .repository import ItemRepository

__all__ = ["BookSource", "ItemRepository"]
