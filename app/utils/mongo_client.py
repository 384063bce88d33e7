"""
MongoDB client for file-creation records.

Provides:
- Connection management (connect, ping, close)
- Scoped use as a context manager
- Single-document inserts with driver errors mapped to SinkError
"""

from typing import Optional

from loguru import logger
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from pymongo.results import InsertOneResult

from app.models.schemas import FileCreationRecord
from app.utils.config import StoreConfig
from app.utils.errors import ConnectionFatal, SinkError


class MetadataSink:
    """One collection in one database on a MongoDB server."""

    def __init__(self, config: StoreConfig, server_selection_timeout_ms: int = 5000):
        """Initialize sink; no connection is made until connect()."""
        self.config = config
        self.server_selection_timeout_ms = server_selection_timeout_ms

        self._client: Optional[MongoClient] = None
        self._collection: Optional[Collection] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def collection(self) -> Collection:
        """Target collection; requires an open connection."""
        if self._collection is None:
            raise SinkError("Metadata sink is not connected")
        return self._collection

    def connect(self):
        """Establish connection to MongoDB and resolve the target collection."""
        if self._client is not None:
            return

        logger.info(f"Connecting to MongoDB at {self.config.redacted_uri()}...")
        client = None
        try:
            client = MongoClient(
                self.config.mongo_uri(),
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )
            client.admin.command("ping")
            collection = client[self.config.db_name][self.config.file_coll]
        except (PyMongoError, ValueError, TypeError) as e:
            if client is not None:
                client.close()
            raise ConnectionFatal(f"MongoDB connect failed: {e}") from e

        self._client = client
        self._collection = collection
        logger.success(
            f"Connected to MongoDB, recording into {self.config.db_name}.{self.config.file_coll}"
        )

    def close(self):
        """Close MongoDB connection."""
        if self._client is None:
            return

        logger.info("Closing MongoDB connection...")
        client = self._client
        self._client = None
        self._collection = None
        try:
            client.close()
        except PyMongoError as e:
            raise ConnectionFatal(f"MongoDB disconnect failed: {e}") from e

    def insert_record(self, record: FileCreationRecord) -> InsertOneResult:
        """
        Insert one record as a document.

        Raises:
            SinkError: If not connected, unauthenticated, or the server
                rejects the document
        """
        try:
            return self.collection.insert_one(record.to_document())
        except PyMongoError as e:
            raise SinkError(f"Error inserting {record.name}: {e}") from e

    def __enter__(self) -> "MetadataSink":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
