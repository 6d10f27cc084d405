"""
Repository layer for data access operations.
The Storage Gateway owns row and object storage; repositories build queries on top of it.
"""

from app.repositories.gateway import StorageGateway, QuerySpec, TABLES
from app.repositories.property import PropertyRepository, PropertyQueryBuilder

__all__ = [
    "StorageGateway",
    "QuerySpec",
    "TABLES",
    "PropertyRepository",
    "PropertyQueryBuilder",
]
