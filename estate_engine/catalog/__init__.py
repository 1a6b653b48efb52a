"""
Property catalog collaborator.

Responsibilities:
- Load the read-only property dataset into memory.
- Answer filtered search queries for the query cache.
- Supply the candidate neighborhood for similarity ranking.
"""
from .data_store import Catalog, CatalogError, PropertyCatalog

__all__ = ["Catalog", "CatalogError", "PropertyCatalog"]
