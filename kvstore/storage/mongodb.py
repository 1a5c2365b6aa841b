"""
MongoDB storage backend implementation.

A store's snapshot is persisted as one document in a shared collection,
with the store's path as the document _id. Saving replaces that document
as a whole (upsert), so concurrent workers writing the same path resolve
to the last write.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Optional

from bson.errors import InvalidDocument
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import BulkWriteError, CollectionInvalid, PyMongoError

from kvstore.config import StoreConfiguration
from kvstore.errors import (
    BackendConnectionError,
    ConfigurationError,
    LoadError,
    WriteRejected,
)
from kvstore.logging import get_logger
from kvstore.storage.base import BaseStorage
from kvstore.storage.sanitizer import sanitize_keys


ID_FIELD = "_id"

FORMAT_COLLECTION_NAME_RE = re.compile(r"(^\.+)|(\.+$)")

MONGO_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

ConnectionFactory = Callable[[StoreConfiguration, dict[str, Any]], Database]


def format_collection_name(collection_name: str) -> str:
    """
    Strip leading and trailing dots from a collection name.

    A name made only of dots is returned unchanged.
    """
    formatted = FORMAT_COLLECTION_NAME_RE.sub("", collection_name)
    if not formatted:
        return collection_name
    return formatted


def build_client_options(config: StoreConfiguration) -> dict[str, Any]:
    """
    Translate store options into MongoClient keyword arguments.

    Raises:
        ConfigurationError: If certificate and key are separate files
    """
    options: dict[str, Any] = {"journal": config.journaled}
    if config.write_concern is not None:
        options["w"] = config.write_concern
    options["tls"] = config.ssl

    if config.ssl:
        # pymongo reads certificate and private key from a single PEM file
        if config.ssl_cert and config.ssl_key and config.ssl_cert != config.ssl_key:
            raise ConfigurationError(
                "ssl_cert and ssl_key must name the same PEM file "
                "holding both the certificate and the private key"
            )
        certificate_key_file = config.ssl_cert or config.ssl_key
        if certificate_key_file:
            options["tlsCertificateKeyFile"] = certificate_key_file
        if config.ssl_key_pass_phrase is not None:
            options["tlsCertificateKeyFilePassword"] = config.ssl_key_pass_phrase.get_secret_value()
        options["tlsAllowInvalidCertificates"] = not config.ssl_verify
        if config.ssl_ca_cert:
            options["tlsCAFile"] = config.ssl_ca_cert

    if config.user:
        options["username"] = config.user
    if config.password is not None:
        options["password"] = config.password.get_secret_value()
    return options


def build_collection_options(config: StoreConfiguration) -> dict[str, Any]:
    if config.capped:
        return {"capped": True, "size": config.capped_size}
    return {"capped": False}


def connect(config: StoreConfiguration, client_options: dict[str, Any]) -> Database:
    """
    Create a MongoDB client and return the configured database.

    The client connects lazily; nothing is sent to the server here.
    """
    client: MongoClient = MongoClient(host=config.host, port=config.port, **client_options)
    return client[config.database]


class MongoStorage(BaseStorage):
    """
    MongoDB-backed plugin storage.

    Usage:
        storage = MongoStorage()
        storage.configure(StoreConfiguration(path="in_tail.pos", database="fluent"))
        storage.load()
        storage.put("offset", 42)
        storage.save()
    """

    persistent = True
    multi_workers_ready = True

    def __init__(
        self,
        *,
        connection_factory: ConnectionFactory = connect,
        logger: Optional[Any] = None,
    ):
        """
        Initialize an unconfigured MongoDB storage.

        Args:
            connection_factory: Callable returning a database handle
            logger: Logger used for load and save failures
        """
        super().__init__()
        self._connection_factory = connection_factory
        self._log = logger if logger is not None else get_logger(__name__)
        self._path: Optional[str] = None
        self._database: Optional[Database] = None
        self._client_options: dict[str, Any] = {}
        self._collection_options: dict[str, Any] = {"capped": False}

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def client_options(self) -> dict[str, Any]:
        return self._client_options

    @property
    def collection_options(self) -> dict[str, Any]:
        return self._collection_options

    def configure(self, config: StoreConfiguration) -> None:
        """
        Resolve the store path and create the database handle.

        Raises:
            ConfigurationError: If neither path nor usage is set
            BackendConnectionError: If the client cannot be created
        """
        path = config.path or config.usage
        if not path:
            raise ConfigurationError("path or usage for storage is required")

        client_options = build_client_options(config)
        collection_options = build_collection_options(config)

        if config.mongo_log_level is not None:
            logging.getLogger("pymongo").setLevel(MONGO_LOG_LEVELS[config.mongo_log_level])

        try:
            database = self._connection_factory(config, client_options)
        except (PyMongoError, TypeError, ValueError) as exc:
            raise BackendConnectionError(
                f"failed to create mongo client for {config.host}:{config.port}: {exc}"
            ) from exc

        self._config = config
        self._path = path
        self._client_options = client_options
        self._collection_options = collection_options
        self._database = database
        self._log = self._log.bind(path=path)

        self._log.debug(
            "MongoDB storage configured",
            database=config.database,
            collection=config.collection,
        )

    @property
    def _db(self) -> Database:
        if self._database is None:
            raise RuntimeError("Storage not configured. Call configure() first.")
        return self._database

    @property
    def _collection_name(self) -> str:
        return format_collection_name(self._config.collection)

    def load(self) -> Optional[dict[str, Any]]:
        """
        Replace the snapshot with every document stored under the path.

        Failures are logged and leave the snapshot untouched.
        """
        database = self._db
        try:
            value: dict[str, Any] = {}
            documents = database[self._collection_name].find({ID_FIELD: self._path})
            # duplicates under one _id are merged, later documents win
            for document in documents:
                if not isinstance(document, Mapping):
                    raise LoadError(type(document).__name__)
                value.update(document)
            value.pop(ID_FIELD, None)
        except LoadError as exc:
            self._log.error(
                "broken content for plugin storage (mapping required: ignored)",
                type=str(exc),
            )
            return None
        except Exception as exc:
            self._log.error(
                "failed to load data for plugin storage from mongo",
                error=str(exc),
            )
            return None

        self._store = value
        return self._store

    def save(self) -> dict[str, Any]:
        """
        Replace the stored document with the sanitized snapshot.

        Rejected writes are logged; any other error propagates.
        Returns the in-memory snapshot.
        """
        collection = self._get_collection()
        record = sanitize_keys(
            self._store,
            self._config.replace_dot_in_key_with,
            self._config.replace_dollar_in_key_with,
        )
        try:
            self._replace_document(collection, record)
        except WriteRejected as exc:
            self._log.warning(str(exc), reason=exc.reason, error=str(exc.__cause__))
        return self._store

    def close(self) -> None:
        """Close the MongoDB client."""
        if self._database is not None:
            self._database.client.close()
            self._database = None

    def _get_collection(self) -> Collection:
        database = self._db
        name = self._collection_name
        if self._collection_options["capped"] and name not in database.list_collection_names():
            try:
                return database.create_collection(
                    name,
                    capped=True,
                    size=self._collection_options["size"],
                )
            except CollectionInvalid:
                # created by another worker in the meantime
                pass
        return database[name]

    def _replace_document(self, collection: Collection, record: dict[str, Any]) -> None:
        try:
            collection.replace_one({ID_FIELD: self._path}, record, upsert=True)
        except (BulkWriteError, InvalidDocument) as exc:
            raise WriteRejected(
                "document is not inserted. Maybe this document is invalid as a BSON.",
                reason="malformed",
            ) from exc
        except (TypeError, ValueError) as exc:
            raise WriteRejected(str(exc), reason="invalid_argument") from exc
