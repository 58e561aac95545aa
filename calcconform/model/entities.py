# ==============================================
# Entities (Data Classes)
# ==============================================
#
# PURPOSE:
#   The four-level survey tree: Project → Building → FunctionalZone → Shutter.
#   Each parent exclusively owns its ordered list of children; the
#   back-reference ids (project_id, building_id, zone_id) are lookup-only.
#
# ENUMS:
# ------
# - ShutterType(Enum): HIGH, LOW
#
# CLASSES:
# --------
# - Project, Building, FunctionalZone, Shutter (dataclass)
#     Methods:
#     - to_dict() -> dict             → Serialize (camelCase keys, ISO dates)
#     - from_dict(data) -> Entity     (classmethod) → Deserialize, tolerating bad fields
#     - apply_updates(updates: dict)  → Merge partial fields in place
#
# - SearchResult (dataclass)
#     A matching shutter together with its zone, building and project.
#
# FUNCTIONS:
# ----------
# - new_id() -> str
#     Globally unique id, shared by all entity kinds.
# - validate_flow(name, value) -> float
# - validate_date(name, value) -> datetime | None
#
# ==============================================

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional

from .dates import format_datetime, parse_datetime, utc_now


def new_id() -> str:
    """Return a new id, unique across every entity kind."""
    return uuid.uuid4().hex


def validate_flow(name: str, value: Any) -> float:
    """
    Check that a flow value is a finite, non-negative number.

    Raises:
        ValueError: If the value is not a number, is negative, NaN or infinite
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        flow = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(flow) or flow < 0:
        raise ValueError(f"{name} must be a finite value >= 0, got {value!r}")
    return flow


def validate_date(name: str, value: Any) -> Optional[datetime]:
    """
    Check an optional date given as a datetime or an ISO-8601 string.

    Returns:
        A timezone-aware datetime, or None when the value is None / ""

    Raises:
        ValueError: If a non-empty value cannot be read as a date
    """
    if value is None or value == "":
        return None
    if not isinstance(value, (datetime, str)):
        raise ValueError(f"{name} must be a date, got {value!r}")
    parsed = parse_datetime(value, default_now=False)
    if parsed is None:
        raise ValueError(f"{name} is not a valid ISO-8601 date: {value!r}")
    return parsed


class ShutterType(Enum):
    """
    Position of a smoke-extraction shutter.

    - HIGH: upper shutter (exhaust)
    - LOW: lower shutter (air inlet)
    """
    HIGH = "high"
    LOW = "low"

    @classmethod
    def parse(cls, value: Any) -> "ShutterType":
        """Accept an enum member or its string value, case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown shutter type {value!r}, expected 'high' or 'low'")


class _Entity:
    """Shared partial-update logic for the tree entities."""

    # Fields callers may change through update_*()
    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    # Fields silently kept when passed to update_*()
    PROTECTED_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    def apply_updates(self, updates: Dict[str, Any]) -> None:
        """
        Merge partial field updates into this entity.

        Protected fields (id, timestamps, back-reference, children) are
        ignored. The caller is responsible for bumping updated_at.

        Raises:
            ValueError: On an unknown field name or an invalid value
        """
        unknown = set(updates) - self.UPDATABLE_FIELDS - self.PROTECTED_FIELDS
        if unknown:
            raise ValueError(
                f"Cannot update {type(self).__name__}: unknown field(s) {', '.join(sorted(unknown))}"
            )
        # Coerce everything before touching the entity
        coerced = {
            name: self._coerce(name, value)
            for name, value in updates.items()
            if name in self.UPDATABLE_FIELDS
        }
        for name, value in coerced.items():
            setattr(self, name, value)

    def _coerce(self, name: str, value: Any) -> Any:
        return value


@dataclass
class Shutter(_Entity):
    """A measured shutter. Leaf of the tree."""

    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"name", "type", "reference_flow", "measured_flow", "remarks"}
    )
    PROTECTED_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "zone_id", "created_at", "updated_at"}
    )

    id: str
    zone_id: str
    name: str
    type: ShutterType = ShutterType.HIGH
    reference_flow: float = 0.0  # m³/h
    measured_flow: float = 0.0  # m³/h
    remarks: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def _coerce(self, name: str, value: Any) -> Any:
        if name == "type":
            return ShutterType.parse(value)
        if name in ("reference_flow", "measured_flow"):
            return validate_flow(name, value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "zoneId": self.zone_id,
            "name": self.name,
            "type": self.type.value,
            "referenceFlow": self.reference_flow,
            "measuredFlow": self.measured_flow,
            "remarks": self.remarks,
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shutter":
        try:
            shutter_type = ShutterType.parse(data.get("type", "high"))
        except ValueError:
            shutter_type = ShutterType.HIGH
        return cls(
            id=str(data.get("id", "")),
            zone_id=str(data.get("zoneId", "")),
            name=str(data.get("name") or ""),
            type=shutter_type,
            reference_flow=_number(data.get("referenceFlow")),
            measured_flow=_number(data.get("measuredFlow")),
            remarks=data.get("remarks"),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )


@dataclass
class FunctionalZone(_Entity):
    """A functional zone of a building, owning its shutters."""

    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"name", "description"})
    PROTECTED_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "building_id", "created_at", "shutters"}
    )

    id: str
    building_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    shutters: List[Shutter] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "buildingId": self.building_id,
            "name": self.name,
            "description": self.description,
            "createdAt": format_datetime(self.created_at),
            "shutters": [shutter.to_dict() for shutter in self.shutters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionalZone":
        return cls(
            id=str(data.get("id", "")),
            building_id=str(data.get("buildingId", "")),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            created_at=parse_datetime(data.get("createdAt")),
            shutters=[Shutter.from_dict(item) for item in data.get("shutters") or []],
        )


@dataclass
class Building(_Entity):
    """A building of a project, owning its functional zones."""

    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"name", "description"})
    PROTECTED_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "project_id", "created_at", "functional_zones"}
    )

    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    functional_zones: List[FunctionalZone] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "name": self.name,
            "description": self.description,
            "createdAt": format_datetime(self.created_at),
            "functionalZones": [zone.to_dict() for zone in self.functional_zones],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Building":
        return cls(
            id=str(data.get("id", "")),
            project_id=str(data.get("projectId", "")),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            created_at=parse_datetime(data.get("createdAt")),
            functional_zones=[
                FunctionalZone.from_dict(item) for item in data.get("functionalZones") or []
            ],
        )


@dataclass
class Project(_Entity):
    """Root of a survey. end_date > start_date is left to the caller."""

    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"name", "city", "start_date", "end_date"}
    )
    PROTECTED_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"id", "created_at", "updated_at", "buildings"}
    )

    id: str
    name: str
    city: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    buildings: List[Building] = field(default_factory=list)

    def _coerce(self, name: str, value: Any) -> Any:
        if name in ("start_date", "end_date"):
            return validate_date(name, value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "startDate": format_datetime(self.start_date),
            "endDate": format_datetime(self.end_date),
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
            "buildings": [building.to_dict() for building in self.buildings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            city=data.get("city"),
            start_date=parse_datetime(data.get("startDate"), default_now=False),
            end_date=parse_datetime(data.get("endDate"), default_now=False),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
            buildings=[Building.from_dict(item) for item in data.get("buildings") or []],
        )


@dataclass
class SearchResult:
    """A shutter matching a search, with the path that leads to it."""
    shutter: Shutter
    zone: FunctionalZone
    building: Building
    project: Project


def _number(value: Any) -> float:
    # Stored flows are trusted but may be missing or hand-edited
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0
