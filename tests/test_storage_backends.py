# ==============================================
# Tests for the Key-Value Storage Backends
# ==============================================

from unittest.mock import MagicMock, patch

import pytest
from pymongo.errors import ConnectionFailure, PyMongoError

from calcconform.config import AppConfig, StorageConfig
from calcconform.persistence.project_store import ProjectStore
from calcconform.storage import create_storage
from calcconform.storage.base import StorageError
from calcconform.storage.file_storage import JsonFileStorage
from calcconform.storage.memory_storage import MemoryStorage
from calcconform.storage.mongo_storage import MongoStorage


class TestJsonFileStorage:
    async def test_round_trip(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        await storage.set("calcconform_projects", '[{"name": "Tour Horizon"}]')
        assert await storage.get("calcconform_projects") == '[{"name": "Tour Horizon"}]'
        assert (tmp_path / "calcconform_projects.json").exists()
        assert not (tmp_path / "calcconform_projects.json.tmp").exists()

    async def test_missing_key_is_none(self, tmp_path):
        assert await JsonFileStorage(str(tmp_path)).get("nothing") is None

    async def test_overwrite(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        await storage.set("k", "one")
        await storage.set("k", "two")
        assert await storage.get("k") == "two"

    async def test_multi_remove_ignores_missing(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        await storage.set("a", "1")
        await storage.set("b", "2")
        await storage.multi_remove(["a", "missing"])
        assert await storage.get("a") is None
        assert await storage.get("b") == "2"

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "data"
        JsonFileStorage(str(target))
        assert target.is_dir()

    def test_rejects_path_like_keys(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path))
        with pytest.raises(ValueError):
            storage.path_for("../escape")

    def test_unusable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            JsonFileStorage(str(blocker / "data"))

    async def test_store_survives_restart(self, tmp_path):
        first = ProjectStore(JsonFileStorage(str(tmp_path)))
        project = await first.create_project("Tour Horizon", city="Lyon")
        await first.set_favorite_projects([project.id])

        second = ProjectStore(JsonFileStorage(str(tmp_path)))
        await second.initialize()
        assert [p.name for p in await second.get_projects()] == ["Tour Horizon"]
        assert await second.get_favorite_projects() == [project.id]


@pytest.fixture
def mongo_client():
    with patch("calcconform.storage.mongo_storage.PyMongoClient") as client_cls:
        yield client_cls


class TestMongoStorage:
    def make_storage(self, **kwargs):
        return MongoStorage(host="db", port=27017, database="calcconform", **kwargs)

    def collection_of(self, client_cls):
        return client_cls.return_value["calcconform"]["kv_store"]

    def test_uri(self):
        assert self.make_storage().uri == "mongodb://db:27017/calcconform"
        assert self.make_storage(user="u", password="p").uri == "mongodb://u:p@db:27017/calcconform"

    def test_connect_pings(self, mongo_client):
        storage = self.make_storage()
        storage.connect()
        mongo_client.assert_called_once_with("mongodb://db:27017/calcconform")
        mongo_client.return_value.admin.command.assert_called_once_with("ping")

    def test_connection_failure_becomes_storage_error(self, mongo_client):
        mongo_client.return_value.admin.command.side_effect = ConnectionFailure("down")
        with pytest.raises(StorageError):
            self.make_storage().connect()

    async def test_not_connected(self):
        with pytest.raises(StorageError):
            await self.make_storage().get("k")

    async def test_get(self, mongo_client):
        collection = self.collection_of(mongo_client)
        collection.find_one.return_value = {"_id": "k", "value": "[]"}
        storage = self.make_storage()
        storage.connect()

        assert await storage.get("k") == "[]"
        collection.find_one.assert_called_once_with({"_id": "k"})

    async def test_get_missing(self, mongo_client):
        self.collection_of(mongo_client).find_one.return_value = None
        storage = self.make_storage()
        storage.connect()
        assert await storage.get("k") is None

    async def test_set_upserts(self, mongo_client):
        storage = self.make_storage()
        storage.connect()
        await storage.set("k", "[1]")
        self.collection_of(mongo_client).replace_one.assert_called_once_with(
            {"_id": "k"}, {"_id": "k", "value": "[1]"}, upsert=True
        )

    async def test_multi_remove(self, mongo_client):
        storage = self.make_storage()
        storage.connect()
        await storage.multi_remove(["a", "b"])
        self.collection_of(mongo_client).delete_many.assert_called_once_with({"_id": {"$in": ["a", "b"]}})

    async def test_driver_error_becomes_storage_error(self, mongo_client):
        self.collection_of(mongo_client).replace_one.side_effect = PyMongoError("boom")
        storage = self.make_storage()
        storage.connect()
        with pytest.raises(StorageError):
            await storage.set("k", "v")

    def test_context_manager_disconnects(self, mongo_client):
        with self.make_storage() as storage:
            assert storage.client is not None
        assert storage.client is None
        mongo_client.return_value.close.assert_called_once()


class TestCreateStorage:
    def test_memory(self):
        config = AppConfig(storage=StorageConfig(backend="memory"))
        assert isinstance(create_storage(config), MemoryStorage)

    def test_file(self, tmp_path):
        config = AppConfig(storage=StorageConfig(backend="file", data_dir=str(tmp_path)))
        storage = create_storage(config)
        assert isinstance(storage, JsonFileStorage)
        assert storage.storage_dir == tmp_path

    def test_mongo_is_connected(self, mongo_client):
        storage = create_storage(AppConfig(storage=StorageConfig(backend="mongo")))
        assert isinstance(storage, MongoStorage)
        assert storage.client is mongo_client.return_value

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_storage(AppConfig(storage=StorageConfig(backend="redis")))

    def test_store_from_config(self):
        config = AppConfig(storage=StorageConfig(backend="memory"))
        config.compliance.history_limit = 3
        store = ProjectStore.from_config(config)
        assert isinstance(store.storage, MemoryStorage)
        assert store.history.limit == 3
