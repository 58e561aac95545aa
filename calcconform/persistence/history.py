# ==============================================
# QuickCalcHistory
# ==============================================
#
# PURPOSE:
#   Remember the last few ad-hoc compliance calculations made outside of
#   any project, most recent first.
#
# SEMANTICS:
#   - add() assigns id + timestamp, prepends, truncates to the limit
#     (default 5) and persists.
#   - clear() empties and persists.
#   - No per-item update or delete.
#
# ==============================================

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List

from calcconform.analysis.compliance import ComplianceResult, ComplianceStatus
from calcconform.model.dates import format_datetime, parse_datetime, utc_now
from calcconform.model.entities import new_id
from calcconform.storage.base import KeyValueStorage

from .load_guard import LoadGuard

logger = logging.getLogger(__name__)

QUICK_CALC_HISTORY_KEY = "calcconform_quick_calc_history"
DEFAULT_HISTORY_LIMIT = 5


@dataclass
class QuickCalcHistoryItem:
    """One saved quick calculation."""
    id: str
    reference_flow: float
    measured_flow: float
    deviation: float
    status: ComplianceStatus
    color: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "referenceFlow": self.reference_flow,
            "measuredFlow": self.measured_flow,
            "deviation": self.deviation,
            "status": self.status.value,
            "color": self.color,
            "timestamp": format_datetime(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuickCalcHistoryItem":
        """
        Raises:
            ValueError / KeyError / TypeError: On an unusable entry
        """
        return cls(
            id=str(data["id"]),
            reference_flow=float(data["referenceFlow"]),
            measured_flow=float(data["measuredFlow"]),
            deviation=float(data["deviation"]),
            status=ComplianceStatus(data["status"]),
            color=data.get("color", ""),
            timestamp=parse_datetime(data.get("timestamp")),
        )


class QuickCalcHistory:
    """Bounded, most-recent-first log of quick calculations."""

    def __init__(self, storage: KeyValueStorage, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got {limit}")
        self._storage = storage
        self.limit = limit
        self._items: List[QuickCalcHistoryItem] = []
        self._guard = LoadGuard(self._load)

    @property
    def loaded(self) -> bool:
        return self._guard.loaded

    async def load(self) -> None:
        await self._guard.ensure()

    async def _load(self) -> None:
        try:
            data = await self._storage.get(QUICK_CALC_HISTORY_KEY)
        except Exception as e:
            logger.error(f"Error loading quick-calc history, starting empty: {e}")
            self._items = []
            return
        if not data:
            self._items = []
            return

        try:
            raw_items = json.loads(data)
            if not isinstance(raw_items, list):
                raise ValueError(f"expected a JSON array, got {type(raw_items).__name__}")
        except ValueError as e:
            logger.error(f"Malformed quick-calc history, starting empty: {e}")
            self._items = []
            return

        items = []
        for raw in raw_items:
            try:
                items.append(QuickCalcHistoryItem.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable history entry {raw!r}: {e}")
        self._items = items[:self.limit]

    async def get(self) -> List[QuickCalcHistoryItem]:
        await self.load()
        return [replace(item) for item in self._items]

    async def add(self, result: ComplianceResult) -> QuickCalcHistoryItem:
        """
        Record a calculation at the head of the log.

        Args:
            result: A valid compliance result

        Returns:
            A copy of the stored item

        Raises:
            ValueError: If the result is INVALID
            StorageError: If the write fails
        """
        if not result.is_valid:
            raise ValueError("Cannot record an invalid compliance result")

        await self.load()
        item = QuickCalcHistoryItem(
            id=new_id(),
            reference_flow=result.reference_flow,
            measured_flow=result.measured_flow,
            deviation=result.deviation,
            status=result.status,
            color=result.color,
        )
        self._items.insert(0, item)
        self._items = self._items[:self.limit]
        await self._save()
        return replace(item)

    async def clear(self) -> None:
        await self.load()
        self._items = []
        await self._save()

    async def _save(self) -> None:
        try:
            await self._storage.set(
                QUICK_CALC_HISTORY_KEY,
                json.dumps([item.to_dict() for item in self._items])
            )
        except Exception as e:
            logger.error(f"Error saving quick-calc history: {e}")
            raise

    def reset(self) -> None:
        self._items = []
        self._guard.reset()

