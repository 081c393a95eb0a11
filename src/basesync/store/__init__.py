"""
Schema store clients for basesync.
"""

from .base import SchemaStore
from .airtable import AirtableSchemaStore
from .factory import SchemaStoreFactory, create_store

__all__ = [
    "SchemaStore",
    "AirtableSchemaStore",
    "SchemaStoreFactory",
    "create_store",
]
