# ==============================================
# DURABLE STORAGE
# ==============================================
#
# This package holds the async key-value backends the project store
# persists through.
#
# Modules:
# --------
# - base.py            → KeyValueStorage contract + StorageError
# - memory_storage.py  → In-process dict (tests, throwaway sessions)
# - file_storage.py    → One JSON file per key in a data directory
# - mongo_storage.py   → One document per key in a MongoDB collection
#
# ==============================================

from calcconform.config import AppConfig

from .base import KeyValueStorage, StorageError
from .file_storage import JsonFileStorage
from .memory_storage import MemoryStorage
from .mongo_storage import MongoStorage


def create_storage(config: AppConfig) -> KeyValueStorage:
    """
    Build the backend selected by ``config.storage.backend``.

    A Mongo backend is connected before being returned.

    Raises:
        ValueError: For an unknown backend name
        StorageError: If the backend cannot be reached or created
    """
    backend = config.storage.backend
    if backend == "memory":
        return MemoryStorage()
    if backend == "file":
        return JsonFileStorage(config.storage.data_dir)
    if backend == "mongo":
        storage = MongoStorage(
            host=config.mongo.host,
            port=config.mongo.port,
            database=config.mongo.database,
            user=config.mongo.user,
            password=config.mongo.password,
            collection=config.mongo.collection,
        )
        storage.connect()
        return storage
    raise ValueError(f"Unknown storage backend '{backend}'")


__all__ = [
    "KeyValueStorage",
    "StorageError",
    "JsonFileStorage",
    "MemoryStorage",
    "MongoStorage",
    "create_storage",
]
