"""
Abstract base class for schema store clients.

This module provides the interface the reconciler uses to read and extend a
destination schema.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict
import logging

from ..schema.models import SchemaDefinition


class SchemaStore(ABC):
    """
    Abstract base class for all schema store clients.

    Every operation raises ``StoreUnavailable`` when the store cannot be
    reached or returns something unusable.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def fetch_schema(self, destination_id: str) -> SchemaDefinition:
        """
        Fetch the current schema of a destination.

        Args:
            destination_id: Destination (base) identifier

        Returns:
            Destination schema with store-assigned table and field ids
        """
        pass

    @abstractmethod
    async def create_destination(self, schema_payload: Dict[str, Any]) -> str:
        """
        Create a new destination seeded with tables and fields.

        Args:
            schema_payload: Name, workspace and converted table payloads

        Returns:
            The new destination identifier
        """
        pass

    @abstractmethod
    async def create_table(self, destination_id: str, table_payload: Dict[str, Any]) -> str:
        """Create a table in a destination and return its id."""
        pass

    @abstractmethod
    async def add_field(
        self,
        destination_id: str,
        table_id: str,
        field_payload: Dict[str, Any],
    ) -> str:
        """Add a field to a destination table and return its id."""
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """
        Close the client and clean up resources.

        Clients holding sessions or connections override this.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
