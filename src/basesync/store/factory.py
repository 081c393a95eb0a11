"""
Schema store factory for creating store clients based on configuration.
"""

from typing import Callable, Dict
import logging

from .base import SchemaStore
from .airtable import AirtableSchemaStore
from ..config import BaseSyncConfig
from ..exceptions import ConfigurationError


logger = logging.getLogger(__name__)


StoreBuilder = Callable[[BaseSyncConfig], SchemaStore]


class SchemaStoreFactory:
    """Factory for creating schema store clients by provider name."""

    # Registry of available store implementations
    _STORE_REGISTRY: Dict[str, StoreBuilder] = {
        "airtable": lambda config: AirtableSchemaStore(config.airtable),
    }

    @classmethod
    def create_store(cls, config: BaseSyncConfig) -> SchemaStore:
        """
        Create a schema store client for the configured provider.

        Raises:
            ConfigurationError: If the provider is unknown or the client can't be built
        """
        provider = config.store.lower()

        if provider not in cls._STORE_REGISTRY:
            available = list(cls._STORE_REGISTRY.keys())
            raise ConfigurationError(
                f"Unsupported schema store: {provider}. Available stores: {available}"
            )

        try:
            store = cls._STORE_REGISTRY[provider](config)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to create {provider} store: {e}")
            raise ConfigurationError(f"Failed to create {provider} store: {e}") from e

        logger.debug(f"Created {store}")
        return store

    @classmethod
    def register_store(cls, provider_name: str, builder: StoreBuilder) -> None:
        """Register an additional store provider."""
        cls._STORE_REGISTRY[provider_name.lower()] = builder
        logger.info(f"Registered schema store provider: {provider_name}")

    @classmethod
    def get_supported_stores(cls) -> list[str]:
        return list(cls._STORE_REGISTRY.keys())


def create_store(config: BaseSyncConfig) -> SchemaStore:
    """Create the schema store described by ``config``."""
    return SchemaStoreFactory.create_store(config)
