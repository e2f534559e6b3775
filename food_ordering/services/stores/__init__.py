"""
Store Factory

Provides a single entry point for obtaining the persistence collaborators.
Automatically selects MemoryStore or SqlStore based on ENV_MODE configuration.

Usage:
    from food_ordering.services.stores import get_store

    store = get_store()
    item = await store.get_item("pizza_margherita")

Environment Switching:
    - ENV_MODE=development → MemoryStore seeded with the demo catalog
    - ENV_MODE=staging → SqlStore
    - ENV_MODE=production → SqlStore

Version: 1.0.0
"""

import logging
from functools import lru_cache

from food_ordering.core.config import get_settings
from food_ordering.services.stores.base import (
    BaseStore,
    CartConflictError,
    OrderNotFoundError,
    PlacedOrder,
)
from food_ordering.services.stores.memory import MemoryStore, demo_catalog

logger = logging.getLogger(__name__)


@lru_cache()
def get_store() -> BaseStore:
    """
    Get the configured store instance.

    The instance is cached so every request shares one store (and, for
    MemoryStore, one set of data).

    Returns:
        BaseStore: Configured store
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Store: Using MemoryStore (development mode)")
        return MemoryStore(catalog=demo_catalog())

    # Imported here so development mode never needs the database driver
    from food_ordering.services.stores.sql import SqlStore

    logger.info(f"Store: Using SqlStore ({settings.env_mode.value} mode)")
    return SqlStore()


def reset_store() -> None:
    """
    Clear the cached store instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_store.cache_clear()
    logger.debug("Store cache cleared")


__all__ = [
    "get_store",
    "reset_store",
    "BaseStore",
    "CartConflictError",
    "OrderNotFoundError",
    "PlacedOrder",
    "MemoryStore",
    "demo_catalog",
]
