import json

import pytest

from calcconform.persistence.favorites import FAVORITE_KEYS, FavoriteKind, FavoritesIndex
from calcconform.storage.memory_storage import MemoryStorage


@pytest.fixture
def favorites(memory_storage):
    return FavoritesIndex(memory_storage)


class TestSetAndGet:
    async def test_set_replaces_whole_list(self, favorites, memory_storage):
        await favorites.set(FavoriteKind.PROJECTS, ["a", "b"])
        await favorites.set(FavoriteKind.PROJECTS, ["c"])
        assert await favorites.get(FavoriteKind.PROJECTS) == ["c"]
        assert json.loads(memory_storage.data[FAVORITE_KEYS[FavoriteKind.PROJECTS]]) == ["c"]

    async def test_kinds_are_independent(self, favorites):
        await favorites.set(FavoriteKind.ZONES, ["z1"])
        assert await favorites.get(FavoriteKind.ZONES) == ["z1"]
        assert await favorites.get(FavoriteKind.SHUTTERS) == []

    async def test_duplicates_dropped_order_kept(self, favorites):
        stored = await favorites.set(FavoriteKind.SHUTTERS, ["s2", "s1", "s2", "s3", "s1"])
        assert stored == ["s2", "s1", "s3"]

    async def test_ids_are_not_checked_against_the_tree(self, favorites):
        assert await favorites.set(FavoriteKind.BUILDINGS, ["nowhere"]) == ["nowhere"]

    async def test_get_returns_copy(self, favorites):
        await favorites.set(FavoriteKind.PROJECTS, ["a"])
        ids = await favorites.get(FavoriteKind.PROJECTS)
        ids.append("b")
        assert await favorites.get(FavoriteKind.PROJECTS) == ["a"]


class TestLoading:
    async def test_reads_stored_lists(self):
        storage = MemoryStorage({FAVORITE_KEYS[FavoriteKind.BUILDINGS]: '["b1", "b2"]'})
        favorites = FavoritesIndex(storage)
        await favorites.load()
        assert favorites.loaded
        assert await favorites.get(FavoriteKind.BUILDINGS) == ["b1", "b2"]

    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}', '"text"'])
    async def test_malformed_list_becomes_empty(self, raw):
        storage = MemoryStorage({
            FAVORITE_KEYS[FavoriteKind.PROJECTS]: raw,
            FAVORITE_KEYS[FavoriteKind.ZONES]: '["z1"]',
        })
        favorites = FavoritesIndex(storage)
        assert await favorites.get(FavoriteKind.PROJECTS) == []
        assert await favorites.get(FavoriteKind.ZONES) == ["z1"]

    async def test_loaded_once(self, favorites, memory_storage):
        await favorites.get(FavoriteKind.PROJECTS)
        await favorites.get(FavoriteKind.SHUTTERS)
        await favorites.set(FavoriteKind.ZONES, ["z"])
        assert memory_storage.read_count == 4


class TestPrune:
    async def test_prune_removes_from_every_list(self, favorites, memory_storage):
        await favorites.set(FavoriteKind.PROJECTS, ["p1", "x"])
        await favorites.set(FavoriteKind.SHUTTERS, ["s1", "x", "s2"])
        await favorites.prune(["x", "s1"])
        assert await favorites.get(FavoriteKind.PROJECTS) == ["p1"]
        assert await favorites.get(FavoriteKind.SHUTTERS) == ["s2"]
        for kind in FavoriteKind:
            assert FAVORITE_KEYS[kind] in memory_storage.data

    async def test_deleted_id_cannot_come_back(self, favorites):
        prepared = await favorites.get(FavoriteKind.SHUTTERS) + ["s1"]
        await favorites.prune(["s1"])
        stored = await favorites.set(FavoriteKind.SHUTTERS, prepared + ["s2"])
        assert stored == ["s2"]

    async def test_reset_forgets_deleted_ids(self, favorites):
        await favorites.prune(["s1"])
        favorites.reset()
        assert not favorites.loaded
        assert await favorites.set(FavoriteKind.SHUTTERS, ["s1"]) == ["s1"]
