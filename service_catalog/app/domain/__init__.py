"""
Catalog domain types.
"""

from .item import Item, REMOTE_FIELD_MAP, normalize_isbn

__all__ = ["Item", "REMOTE_FIELD_MAP", "normalize_isbn"]
