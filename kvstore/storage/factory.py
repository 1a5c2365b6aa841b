"""
Storage factory for creating storage backend instances.

This module provides factory functions to create the appropriate
storage implementation based on configuration.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

import structlog

from kvstore.config import StoreConfiguration
from kvstore.logging import configure_logging, get_logger
from kvstore.storage.base import BaseStorage, MemoryStorage


if TYPE_CHECKING:
    from kvstore.config import Settings


logger = get_logger(__name__)


class StorageBackend(str, Enum):
    """Supported storage backends."""
    MONGO = "mongo"
    MEMORY = "memory"


def get_storage_backend(settings: "Settings") -> StorageBackend:
    """
    Determine which storage backend to use based on settings.

    Args:
        settings: Process settings

    Returns:
        The configured storage backend
    """
    backend_str = settings.storage_backend.lower()

    try:
        return StorageBackend(backend_str)
    except ValueError:
        raise ValueError(
            f"Unsupported storage backend: {backend_str}. "
            f"Supported backends: {[b.value for b in StorageBackend]}"
        )


def create_storage(
    settings: "Settings",
    *,
    path: Optional[str] = None,
    usage: Optional[str] = None,
    **options: Any,
) -> BaseStorage:
    """
    Create and configure a storage instance.

    Args:
        settings: Process settings (backend and connection defaults)
        path: Identity of the store
        usage: Usage label, used as identity when path is not given
        **options: Further StoreConfiguration fields

    Returns:
        Configured storage (not yet loaded)
    """
    if not structlog.is_configured():
        configure_logging(settings)

    backend = get_storage_backend(settings)
    config = StoreConfiguration.from_settings(settings, path=path, usage=usage, **options)

    if backend == StorageBackend.MONGO:
        from kvstore.storage.mongodb import MongoStorage

        logger.info(
            "Creating MongoDB storage",
            database=config.database,
            collection=config.collection,
        )
        storage: BaseStorage = MongoStorage()

    elif backend == StorageBackend.MEMORY:
        logger.info("Creating in-memory storage")
        storage = MemoryStorage()

    else:
        raise ValueError(f"Unsupported backend: {backend}")

    storage.configure(config)
    return storage
