"""
Tests for storage backend selection.
"""

from unittest.mock import patch

import pytest
import structlog

from kvstore.config import Settings
from kvstore.errors import ConfigurationError
from kvstore.storage import (
    MemoryStorage,
    StorageBackend,
    create_storage,
    get_storage_backend,
)
from kvstore.storage.mongodb import MongoStorage


@pytest.fixture
def settings():
    return Settings(_env_file=None, mongodb_database="fluent_test", mongodb_host="mongo.local")


def test_get_storage_backend(settings):
    assert get_storage_backend(settings) == StorageBackend.MONGO
    memory = settings.model_copy(update={"storage_backend": "memory"})
    assert get_storage_backend(memory) == StorageBackend.MEMORY


def test_unsupported_backend(settings):
    redis = settings.model_copy(update={"storage_backend": "redis"})

    with pytest.raises(ValueError, match="Unsupported storage backend"):
        get_storage_backend(redis)


def test_create_mongo_storage(settings):
    with patch("kvstore.storage.mongodb.MongoClient") as client_cls:
        storage = create_storage(settings, path="in_tail.pos", collection="positions")

    assert isinstance(storage, MongoStorage)
    assert storage.path == "in_tail.pos"
    assert storage.config.collection == "positions"
    client_cls.assert_called_once_with(host="mongo.local", port=27017, journal=False, tls=False)


def test_create_mongo_storage_with_usage(settings):
    with patch("kvstore.storage.mongodb.MongoClient"):
        storage = create_storage(settings, usage="buffer")

    assert storage.path == "buffer"


def test_create_mongo_storage_without_identity(settings):
    with patch("kvstore.storage.mongodb.MongoClient") as client_cls:
        with pytest.raises(ConfigurationError):
            create_storage(settings)

    client_cls.assert_not_called()


def test_create_memory_storage(settings):
    memory = settings.model_copy(update={"storage_backend": "memory"})

    storage = create_storage(memory, path="p")

    assert isinstance(storage, MemoryStorage)
    assert not storage.persistent
    storage.put("a", 1)
    assert storage.save() == {"a": 1}
    assert storage.load() == {"a": 1}


def test_create_storage_configures_logging(settings):
    production = settings.model_copy(update={"storage_backend": "memory", "environment": "production"})
    assert not structlog.is_configured()

    create_storage(production, path="p")

    assert structlog.is_configured()
    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
