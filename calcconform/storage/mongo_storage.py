# ==============================================
# MongoStorage
# ==============================================
#
# PURPOSE:
#   Key-value storage on a MongoDB collection, for installations that
#   keep survey data on a shared server instead of local files.
#
# DOCUMENT SHAPE:
#   {"_id": <key>, "value": <JSON text>}
#
#   The value stays an opaque string: the store always rewrites the
#   whole tree, so there is nothing to gain from nested documents.
#
# CLASS: MongoStorage
# -------------------
#   Stateful: holds connection to MongoDB.
#
#   Constructor:
#   ------------
#   - __init__(host, port, database, user=None, password=None, collection="kv_store")
#
#   Methods:
#   --------
#   - connect() -> None
#       Establish connection to MongoDB and ping it.
#
#   - disconnect() -> None
#       Close connection.
#
#   - get / set / multi_remove (async)
#       pymongo is blocking, so each call runs in a worker thread.
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MongoStorage(...) as storage:` usage.
#
# ==============================================

import asyncio
import logging
from typing import Iterable, Optional

from pymongo import MongoClient as PyMongoClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from .base import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)


class MongoStorage(KeyValueStorage):
    def __init__(self, host, port, database, user=None, password=None, collection="kv_store"):
        # Store connection params. Don't connect yet.
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.collection_name = collection
        self.client = None  # Will hold the actual MongoDB client connection

    @property
    def uri(self) -> str:
        if self.user and self.password:
            return f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
        return f"mongodb://{self.host}:{self.port}/{self.database}"

    def connect(self):
        # Establish connection to MongoDB.
        try:
            self.client = PyMongoClient(self.uri)
            # Test connection
            self.client.admin.command('ping')
            logger.info(f"Connected to MongoDB at {self.host}:{self.port}/{self.database}")
        except ConnectionFailure as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise StorageError(f"Could not connect to MongoDB: {e}") from e
        except OperationFailure as e:
            logger.error(f"Authentication failed: {e}")
            raise StorageError(f"MongoDB authentication failed: {e}") from e

    def disconnect(self):
        # Close connection.
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB.")
            self.client = None

    def _collection(self):
        if not self.client:
            raise StorageError("Not connected to MongoDB.")
        return self.client[self.database][self.collection_name]

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._find_value, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._replace_value, key, value)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._delete_keys, list(keys))

    def _find_value(self, key: str) -> Optional[str]:
        collection = self._collection()
        try:
            doc = collection.find_one({"_id": key})
        except PyMongoError as e:
            raise StorageError(f"MongoDB read of '{key}' failed: {e}") from e
        return doc.get("value") if doc else None

    def _replace_value(self, key: str, value: str) -> None:
        collection = self._collection()
        try:
            # Replace the whole document, or insert if it doesn't exist
            collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)
        except PyMongoError as e:
            raise StorageError(f"MongoDB write of '{key}' failed: {e}") from e

    def _delete_keys(self, keys) -> None:
        if not keys:
            return
        collection = self._collection()
        try:
            result = collection.delete_many({"_id": {"$in": keys}})
        except PyMongoError as e:
            raise StorageError(f"MongoDB delete failed: {e}") from e
        logger.debug(f"Deleted {result.deleted_count} keys from '{self.collection_name}'")

    def __enter__(self):
        # For `with MongoStorage(...) as storage:` usage.
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
