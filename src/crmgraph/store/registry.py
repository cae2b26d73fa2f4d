"""Record store registry and factory.

Provides a config-driven registry for record stores.

Usage:
    # Get store from environment
    store = RecordStoreFactory.from_env()

    # Or explicit name
    store = RecordStoreFactory.create("sqlite", db_path=Path("crm.sqlite"))

Environment:
    CRMGRAPH_STORE=sqlite (default) | memory
    CRMGRAPH_DB_PATH=/path/to/crm.sqlite (sqlite store)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

from crmgraph.config import config

if TYPE_CHECKING:
    from crmgraph.store.base import BaseRecordStore, RecordStore

logger = logging.getLogger(__name__)


class RecordStoreRegistryError(ValueError):
    """Error raised by the record store registry."""

    pass


class RecordStoreRegistry:
    """Registry of available record stores.

    Stores register themselves at import time. A new backend is added by
    implementing BaseRecordStore and calling
    ``RecordStoreRegistry.register("name", StoreClass)``.
    """

    _stores: Dict[str, Type[BaseRecordStore]] = {}

    @classmethod
    def register(cls, name: str, store_class: Type[BaseRecordStore]) -> None:
        """Register a store class.

        Args:
            name: Store name (e.g., "memory", "sqlite")
            store_class: Class implementing BaseRecordStore
        """
        cls._stores[name.lower()] = store_class

    @classmethod
    def unregister(cls, name: str) -> None:
        """Unregister a store (mainly for testing)."""
        cls._stores.pop(name.lower(), None)

    @classmethod
    def get(cls, name: str) -> Optional[Type[BaseRecordStore]]:
        return cls._stores.get(name.lower())

    @classmethod
    def list_stores(cls) -> list[str]:
        return list(cls._stores.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._stores


class RecordStoreFactory:
    """Factory for creating record stores from configuration."""

    DEFAULT_STORE = "sqlite"

    @classmethod
    def from_env(cls, **kwargs: Any) -> "RecordStore":
        """Create a store instance from environment configuration.

        The sqlite store gets ``config.db_path`` unless ``db_path`` is passed.

        Raises:
            RecordStoreRegistryError: If the configured store is unknown
        """
        name = config.store or cls.DEFAULT_STORE
        if name.lower() == "sqlite" and "db_path" not in kwargs:
            config.ensure_directories()
            kwargs["db_path"] = config.db_path
        return cls.create(name, **kwargs)

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> "RecordStore":
        """Create a store instance by name.

        Args:
            name: Store name
            **kwargs: Passed to the store constructor

        Raises:
            RecordStoreRegistryError: If the store is not registered
        """
        store_class = RecordStoreRegistry.get(name)
        if store_class is None:
            available = RecordStoreRegistry.list_stores()
            raise RecordStoreRegistryError(
                f"Unknown record store: '{name}'. Available: {available}"
            )
        logger.debug(f"Creating record store '{name}'")
        return store_class(**kwargs)


# =============================================================================
# Auto-register built-in stores on import
# =============================================================================


def _register_builtin_stores() -> None:
    from crmgraph.store.memory import InMemoryRecordStore
    from crmgraph.store.sqlite import SQLiteRecordStore

    RecordStoreRegistry.register("memory", InMemoryRecordStore)
    RecordStoreRegistry.register("sqlite", SQLiteRecordStore)


_register_builtin_stores()
