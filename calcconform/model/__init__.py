# ==============================================
# ENTITY MODEL
# ==============================================
#
# This package holds the survey tree and its JSON shape.
#
# Modules:
# --------
# - entities.py       → Project / Building / FunctionalZone / Shutter
# - dates.py          → ISO date formatting and tolerant parsing
# - serialization.py  → Whole-tree JSON (de)serialization
#
# ==============================================

from .entities import (
    Building,
    FunctionalZone,
    Project,
    SearchResult,
    Shutter,
    ShutterType,
    new_id,
    validate_date,
    validate_flow,
)
from .serialization import deserialize_projects, serialize_projects

__all__ = [
    "Building",
    "FunctionalZone",
    "Project",
    "SearchResult",
    "Shutter",
    "ShutterType",
    "new_id",
    "validate_date",
    "validate_flow",
    "deserialize_projects",
    "serialize_projects",
]
