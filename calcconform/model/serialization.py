# ==============================================
# Serialization
# ==============================================
#
# PURPOSE:
#   Convert the whole project tree to and from the JSON text held under
#   a single durable-storage key. Writes are always full-graph rewrites.
#
# FUNCTIONS:
# ----------
# - serialize_projects(projects) -> str
# - deserialize_projects(text) -> list[Project]
#     Raises ValueError on malformed JSON; the store decides how to degrade.
#
# SHAPE:
# ------
#   [{"id", "name", "city", "startDate", "endDate", "createdAt", "updatedAt",
#     "buildings": [{"id", "projectId", "name", "description", "createdAt",
#       "functionalZones": [{"id", "buildingId", "name", "description",
#         "createdAt", "shutters": [{"id", "zoneId", "name", "type",
#           "referenceFlow", "measuredFlow", "remarks",
#           "createdAt", "updatedAt"}]}]}]}]
#
# ==============================================

import json
from typing import List

from .entities import Project


def serialize_projects(projects: List[Project]) -> str:
    """Serialize the whole project tree to a JSON array."""
    return json.dumps([project.to_dict() for project in projects], ensure_ascii=False)


def deserialize_projects(text: str) -> List[Project]:
    """
    Rebuild the project tree from its JSON text.

    Raises:
        ValueError: If the text is not valid JSON or is not a JSON array
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of projects, got {type(data).__name__}")
    return [Project.from_dict(item) for item in data if isinstance(item, dict)]
