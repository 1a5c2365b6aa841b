"""
Abstract base class for storage backends.

This module defines the contract every storage implementation follows so a
host can swap backends without touching its components. Each storage owns a
single in-memory snapshot; only `load` and `save` talk to the backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from kvstore.config import StoreConfiguration


class BaseStorage(ABC):
    """
    Abstract base class for key-value plugin storage.

    The snapshot operations (get/fetch/put/delete/update) are shared by all
    backends and never perform I/O. Keys are coerced with str().

    Not thread-safe: a storage is used by the one component that owns it.
    """

    persistent: bool = False
    multi_workers_ready: bool = False

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}
        self._config: Optional[StoreConfiguration] = None

    @property
    def config(self) -> Optional[StoreConfiguration]:
        return self._config

    @property
    def store(self) -> dict[str, Any]:
        """The in-memory snapshot."""
        return self._store

    @abstractmethod
    def configure(self, config: StoreConfiguration) -> None:
        """
        Apply a configuration and prepare the backend.

        Raises:
            ConfigurationError: If the configuration cannot be used
        """
        pass

    @abstractmethod
    def load(self) -> Optional[dict[str, Any]]:
        """
        Replace the snapshot with the backend copy.

        Returns the new snapshot, or None if it could not be loaded.
        """
        pass

    @abstractmethod
    def save(self) -> dict[str, Any]:
        """Persist the whole snapshot and return it."""
        pass

    def close(self) -> None:
        """Clean up resources (connections)."""
        pass

    def get(self, key: Any) -> Any:
        return self._store.get(str(key))

    def fetch(self, key: Any, default: Any) -> Any:
        return self._store.get(str(key), default)

    def put(self, key: Any, value: Any) -> Any:
        self._store[str(key)] = value
        return value

    def delete(self, key: Any) -> Any:
        return self._store.pop(str(key), None)

    def update(self, key: Any, transform: Callable[[Any], Any]) -> Any:
        """
        Store `transform(current)` under key.

        `current` is None when the key is absent.
        """
        key = str(key)
        value = transform(self._store.get(key))
        self._store[key] = value
        return value


class MemoryStorage(BaseStorage):
    """
    Non-persistent storage.

    Load and save leave the snapshot as it is; contents are lost with
    the instance.
    """

    def configure(self, config: StoreConfiguration) -> None:
        self._config = config

    def load(self) -> Optional[dict[str, Any]]:
        return self._store

    def save(self) -> dict[str, Any]:
        return self._store
