"""
Pytest configuration and fixtures.

Provides an in-memory stand-in for the parts of the pymongo client used by
MongoStorage, so storage behavior can be tested without a running server.
"""

import copy
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import pytest
import structlog
from pymongo.errors import CollectionInvalid, WriteError

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set test environment
os.environ.setdefault("ENVIRONMENT", "development")

from kvstore.config import StoreConfiguration  # noqa: E402
from kvstore.storage.mongodb import MongoStorage  # noqa: E402


class FakeCollection:
    """Collection holding documents in a list, in insertion order."""

    def __init__(self, name: str, options: Optional[dict[str, Any]] = None):
        self.name = name
        self.options = options or {}
        self.documents: list[Any] = []
        self.find_error: Optional[Exception] = None
        self.replace_error: Optional[Exception] = None
        self.replace_calls: list[tuple[dict, Any, bool]] = []

    def find(self, filter: dict[str, Any]):
        if self.find_error is not None:
            raise self.find_error
        return iter([
            copy.deepcopy(doc)
            for doc in self.documents
            if not isinstance(doc, Mapping)
            or all(doc.get(key) == value for key, value in filter.items())
        ])

    def replace_one(self, filter: dict[str, Any], replacement: Any, upsert: bool = False):
        self.replace_calls.append((filter, replacement, upsert))
        if self.replace_error is not None:
            raise self.replace_error
        if not isinstance(replacement, Mapping):
            raise TypeError("replacement must be an instance of dict")

        if "_id" in replacement and replacement["_id"] != filter["_id"]:
            raise WriteError(
                "After applying the update, the (immutable) field '_id' was found to have been altered",
                66,
                {},
            )
        document = {**copy.deepcopy(dict(replacement)), "_id": filter["_id"]}
        for index, existing in enumerate(self.documents):
            if isinstance(existing, Mapping) and existing.get("_id") == filter["_id"]:
                self.documents[index] = document
                return
        if upsert:
            self.documents.append(document)


class FakeClient:
    def __init__(self):
        self.databases: dict[str, "FakeDatabase"] = {}
        self.closed = False

    def __getitem__(self, name: str) -> "FakeDatabase":
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name, self)
        return self.databases[name]

    def close(self) -> None:
        self.closed = True


class FakeDatabase:
    def __init__(self, name: str, client: FakeClient):
        self.name = name
        self.client = client
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def list_collection_names(self) -> list[str]:
        return list(self.collections)

    def create_collection(self, name: str, **options: Any) -> FakeCollection:
        if name in self.collections:
            raise CollectionInvalid(f"collection {name} already exists")
        self.collections[name] = FakeCollection(name, options)
        return self.collections[name]


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration made by a test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mongo_client():
    """A fake client shared by every storage created in one test."""
    return FakeClient()


@pytest.fixture
def connection_factory(mongo_client):
    """Connection factory handing out databases of the fake client."""
    calls: list[tuple[StoreConfiguration, dict[str, Any]]] = []

    def factory(config: StoreConfiguration, client_options: dict[str, Any]) -> FakeDatabase:
        calls.append((config, client_options))
        return mongo_client[config.database]

    factory.calls = calls
    return factory


@pytest.fixture
def make_storage(connection_factory):
    """Create configured MongoStorage instances against the fake client."""

    def make(**options: Any) -> MongoStorage:
        values: dict[str, Any] = {
            "path": "my_store_key",
            "database": "fluent_test",
            "collection": "test",
        }
        values.update(options)
        storage = MongoStorage(connection_factory=connection_factory)
        storage.configure(StoreConfiguration(**values))
        return storage

    return make
