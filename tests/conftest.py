# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# - memory_storage     → empty MemoryStorage
# - store              → ProjectStore on memory_storage
# - populated_store    → store holding a small survey tree
# - failing_storage    → factory for a backend whose reads and/or writes raise
#
# Async tests and fixtures run under pytest-asyncio (asyncio_mode = auto).
# ==============================================

import pytest

from calcconform.persistence.project_store import ProjectStore
from calcconform.storage.base import StorageError
from calcconform.storage.memory_storage import MemoryStorage


class FailingStorage(MemoryStorage):
    """MemoryStorage that raises StorageError on demand."""

    def __init__(self, initial=None, fail_reads=False, fail_writes=False):
        super().__init__(initial)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key):
        if self.fail_reads:
            raise StorageError(f"read of {key} failed")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageError(f"write of {key} failed")
        await super().set(key, value)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    return ProjectStore(memory_storage)


@pytest.fixture
async def populated_store(store):
    """
    Two projects:

    Tour Horizon (Lyon)
      └── Building A
            ├── Main Hall: VH01 (high, 5000 → 4900), VB01 (low, 3000 → 3450)
            └── Stairwell: VH02 (high, 4000 → 3000, remarks "motor noise")
    Parc Sud (Grenoble)
      └── Gym
            └── Hall: VH01 (high, 2000 → 2100)
    """
    horizon = await store.create_project("Tour Horizon", city="Lyon")
    building_a = await store.create_building(horizon.id, "Building A")
    hall = await store.create_functional_zone(building_a.id, "Main Hall")
    await store.create_shutter(hall.id, "VH01", "high", 5000, 4900)
    await store.create_shutter(hall.id, "VB01", "low", 3000, 3450)
    stairwell = await store.create_functional_zone(building_a.id, "Stairwell")
    await store.create_shutter(stairwell.id, "VH02", "high", 4000, 3000, remarks="motor noise")

    parc = await store.create_project("Parc Sud", city="Grenoble")
    gym = await store.create_building(parc.id, "Gym")
    gym_hall = await store.create_functional_zone(gym.id, "Hall")
    await store.create_shutter(gym_hall.id, "VH01", "high", 2000, 2100)
    return store


@pytest.fixture
def failing_storage():
    """Factory: failing_storage(initial=None, fail_reads=False, fail_writes=False)."""
    return FailingStorage
