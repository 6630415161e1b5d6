"""
Catalog lookup layer for the Catalog Service.
"""

from .lookup import CatalogLookupService, SOURCE_REMOTE, SOURCE_STALE, SOURCE_STORE

__all__ = ["CatalogLookupService", "SOURCE_REMOTE", "SOURCE_STALE", "SOURCE_STORE"]
