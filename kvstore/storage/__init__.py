"""
Storage abstraction layer.

Provides key-value plugin storage for host components. Each storage keeps
one in-memory snapshot that is loaded from and saved to its backend.

Supported backends:
- MongoDB (persistent)
- Memory (non-persistent)
"""

from kvstore.storage.base import BaseStorage, MemoryStorage
from kvstore.storage.factory import (
    StorageBackend,
    create_storage,
    get_storage_backend,
)
from kvstore.storage.sanitizer import sanitize_keys

__all__ = [
    # Abstract interface
    "BaseStorage",
    "MemoryStorage",
    # Key sanitization
    "sanitize_keys",
    # Factory functions
    "create_storage",
    "get_storage_backend",
    "StorageBackend",
]
