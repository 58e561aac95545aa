import json

import pytest

from calcconform.analysis.compliance import ComplianceStatus, calculate_compliance
from calcconform.persistence.history import QUICK_CALC_HISTORY_KEY, QuickCalcHistory
from calcconform.storage.base import StorageError
from calcconform.storage.memory_storage import MemoryStorage


@pytest.fixture
def history(memory_storage):
    return QuickCalcHistory(memory_storage)


async def test_add_records_result(history):
    item = await history.add(calculate_compliance(3000, 3450))
    assert item.id
    assert item.reference_flow == 3000
    assert item.measured_flow == 3450
    assert item.deviation == pytest.approx(15.0)
    assert item.status is ComplianceStatus.ACCEPTABLE
    assert item.color == "#F59E0B"
    assert item.timestamp is not None


async def test_keeps_five_most_recent_first(history):
    for measured in [1000, 1010, 1020, 1030, 1040, 1050]:
        await history.add(calculate_compliance(1000, measured))

    items = await history.get()
    assert len(items) == 5
    assert [item.measured_flow for item in items] == [1050, 1040, 1030, 1020, 1010]


async def test_custom_limit(memory_storage):
    history = QuickCalcHistory(memory_storage, limit=2)
    for measured in [1000, 1100, 1200]:
        await history.add(calculate_compliance(1000, measured))
    assert [item.measured_flow for item in await history.get()] == [1200, 1100]


def test_limit_must_be_positive(memory_storage):
    with pytest.raises(ValueError):
        QuickCalcHistory(memory_storage, limit=0)


async def test_invalid_result_is_rejected(history, memory_storage):
    with pytest.raises(ValueError):
        await history.add(calculate_compliance(0, 1500))
    assert await history.get() == []
    assert QUICK_CALC_HISTORY_KEY not in memory_storage.data


async def test_clear(history, memory_storage):
    await history.add(calculate_compliance(1000, 1000))
    await history.clear()
    assert await history.get() == []
    assert json.loads(memory_storage.data[QUICK_CALC_HISTORY_KEY]) == []


async def test_survives_reload(history, memory_storage):
    await history.add(calculate_compliance(4000, 3000))
    await history.add(calculate_compliance(5000, 4900))

    reloaded = QuickCalcHistory(memory_storage)
    assert await reloaded.get() == await history.get()


async def test_get_returns_copies(history):
    await history.add(calculate_compliance(1000, 1000))
    items = await history.get()
    items[0].measured_flow = 0
    items.clear()
    assert (await history.get())[0].measured_flow == 1000


async def test_unreadable_entries_are_skipped():
    raw = [
        {"id": "a", "referenceFlow": 1000, "measuredFlow": 1050, "deviation": 5.0,
         "status": "compliant", "color": "#10B981", "timestamp": "2024-03-01T10:00:00Z"},
        {"id": "b", "referenceFlow": 1000},
        {"id": "c", "referenceFlow": 1000, "measuredFlow": 1, "deviation": -99.9, "status": "bogus"},
        "not an object",
    ]
    storage = MemoryStorage({QUICK_CALC_HISTORY_KEY: json.dumps(raw)})
    items = await QuickCalcHistory(storage).get()
    assert [item.id for item in items] == ["a"]


@pytest.mark.parametrize("raw", ["{broken", '{"id": "a"}'])
async def test_malformed_history_becomes_empty(raw):
    storage = MemoryStorage({QUICK_CALC_HISTORY_KEY: raw})
    assert await QuickCalcHistory(storage).get() == []


async def test_write_failure_propagates(failing_storage):
    history = QuickCalcHistory(failing_storage(fail_writes=True))
    with pytest.raises(StorageError):
        await history.add(calculate_compliance(1000, 1000))
