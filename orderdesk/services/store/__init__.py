"""
Order Store Factory

Returns the SQL or in-memory store based on STORE_BACKEND.
"""

import logging
from functools import lru_cache

from orderdesk.core.config import StoreBackend, get_settings
from orderdesk.services.store.base import BaseOrderStore
from orderdesk.services.store.memory import InMemoryOrderStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_store() -> BaseOrderStore:
    """Get the configured order store."""
    settings = get_settings()

    if settings.store_backend == StoreBackend.MEMORY:
        logger.info("Order Store: Using InMemoryOrderStore")
        return InMemoryOrderStore()

    from orderdesk.services.store.sql import SqlOrderStore

    logger.info("Order Store: Using SqlOrderStore")
    return SqlOrderStore()


def reset_order_store() -> None:
    """Clear the cached store instance."""
    get_order_store.cache_clear()


__all__ = [
    "get_order_store",
    "reset_order_store",
    "BaseOrderStore",
    "InMemoryOrderStore",
]
