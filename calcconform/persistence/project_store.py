# ==============================================
# ProjectStore: Load-Once Cache over Durable Storage
# ==============================================
#
# PURPOSE:
#   The single entry point callers use to read and change survey data.
#   Holds the whole Project → Building → Zone → Shutter tree in memory,
#   together with the favorites index and the quick-calc history, and
#   writes it back to a KeyValueStorage on every change.
#
# HOW IT WORKS:
#
#   ┌──────────────────────────────────────────────────────────┐
#   │                      ProjectStore                        │
#   │                                                          │
#   │  initialize() ── once ──► KeyValueStorage.get(...)       │
#   │                              │                           │
#   │                              ▼                           │
#   │   _projects (tree)   FavoritesIndex   QuickCalcHistory   │
#   │         │                  │                 │           │
#   │  create / update / delete  │ set / prune     │ add/clear │
#   │         │                  │                 │           │
#   │         ▼                  ▼                 ▼           │
#   │   whole tree JSON     one key per kind   history JSON    │
#   │         └──────────► KeyValueStorage.set(...) ◄──────────┘
#   └──────────────────────────────────────────────────────────┘
#
# CLASS: ProjectStore
# -------------------
#
#   Constructor:
#   ------------
#   - __init__(storage: KeyValueStorage, history_limit: int = 5)
#   - from_config(config: AppConfig | None = None)  (classmethod)
#
#   Lifecycle:
#   ----------
#   - initialize() -> None
#       Load tree, favorites and history exactly once. Read failures and
#       malformed JSON are logged and become empty collections; this
#       never raises.
#   - clear_all_data() -> None
#       Remove every durable key and return to the uninitialized state.
#
#   Projects / Buildings / Zones / Shutters:
#   ----------------------------------------
#   - get_projects() -> list[Project]
#   - get_project / get_building / get_zone / get_shutter(id) -> Entity | None
#   - create_project(name, city=None, start_date=None, end_date=None)
#   - create_building(project_id, name, description=None)
#   - create_functional_zone(building_id, name, description=None)
#   - create_shutter(zone_id, name, shutter_type, reference_flow,
#                    measured_flow, remarks=None)
#   - update_<kind>(id, **updates) -> Entity | None
#   - delete_<kind>(id) -> bool
#       Deleting cascades to every descendant and prunes their ids from
#       all favorites lists.
#
#   Favorites / History / Search / Info:
#   ------------------------------------
#   - get_favorite_<kind>s() / set_favorite_<kind>s(ids)
#   - get_quick_calc_history() / add_quick_calc_history(result)
#     / clear_quick_calc_history()
#   - search_shutters(query) -> list[SearchResult]
#   - get_storage_info() -> StorageInfo
#
# NOTES:
# ------
#   - Every returned entity is a deep copy; callers cannot change the
#     cache through it.
#   - Lookups are linear scans and every write re-serializes the whole
#     tree. There are no locks: overlapping writes resolve as "last full
#     serialize wins".
#   - Not found is reported as None / False, never raised.
#   - Write failures propagate. The in-memory change made before the
#     failed write is kept.
#
# ==============================================

import asyncio
import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from calcconform.analysis.compliance import ComplianceResult
from calcconform.config import AppConfig, get_config
from calcconform.model.dates import utc_now
from calcconform.model.entities import (
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
from calcconform.model.serialization import deserialize_projects, serialize_projects
from calcconform.search import search_shutters
from calcconform.storage import create_storage
from calcconform.storage.base import KeyValueStorage

from .favorites import FAVORITE_KEYS, FavoriteKind, FavoritesIndex
from .history import DEFAULT_HISTORY_LIMIT, QUICK_CALC_HISTORY_KEY, QuickCalcHistory, QuickCalcHistoryItem
from .load_guard import LoadGuard

logger = logging.getLogger(__name__)

PROJECTS_KEY = "calcconform_projects"

ALL_KEYS = [PROJECTS_KEY, *FAVORITE_KEYS.values(), QUICK_CALC_HISTORY_KEY]

DateLike = Union[datetime, str, None]


@dataclass
class StorageInfo:
    """Advisory figures about the stored tree."""
    projects_count: int
    total_shutters: int
    storage_size_bytes: int

    @property
    def storage_size(self) -> str:
        return f"{self.storage_size_bytes / 1024:.2f} KB"


class ProjectStore:
    """
    Load-once cache of the survey tree backed by durable key-value storage.
    """

    def __init__(self, storage: KeyValueStorage, history_limit: int = DEFAULT_HISTORY_LIMIT):
        """
        Initialize the store. Nothing is read until first use.

        Args:
            storage: Durable key-value backend
            history_limit: Number of quick calculations kept
        """
        self._storage = storage
        self._projects: List[Project] = []
        self._projects_guard = LoadGuard(self._load_projects)
        self.favorites = FavoritesIndex(storage)
        self.history = QuickCalcHistory(storage, limit=history_limit)
        self._initialized = False

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "ProjectStore":
        """Build a store on the backend selected in configuration."""
        config = config or get_config()
        return cls(create_storage(config), history_limit=config.compliance.history_limit)

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------
    # Loading / saving
    # ------------------------------------------

    async def initialize(self) -> None:
        """Load all durable state once. Safe to call from many places."""
        if self._initialized:
            logger.debug("Store already initialized")
            return

        logger.info("Initializing store...")
        await asyncio.gather(
            self._projects_guard.ensure(),
            self.favorites.load(),
            self.history.load(),
        )
        self._initialized = True
        logger.info(f"Store initialized with {len(self._projects)} projects")

    async def _ensure_projects(self) -> None:
        await self._projects_guard.ensure()

    async def _load_projects(self) -> None:
        try:
            data = await self._storage.get(PROJECTS_KEY)
        except Exception as e:
            logger.error(f"Error loading projects, starting empty: {e}")
            self._projects = []
            return

        if not data:
            logger.info("No stored projects found")
            self._projects = []
            return

        try:
            self._projects = deserialize_projects(data)
        except Exception as e:
            logger.error(f"Malformed project data, starting empty: {e}")
            self._projects = []
            return
        logger.info(f"Loaded {len(self._projects)} projects from storage")

    async def _save_projects(self) -> None:
        data = serialize_projects(self._projects)
        try:
            await self._storage.set(PROJECTS_KEY, data)
        except Exception as e:
            logger.error(f"Error saving projects: {e}")
            raise
        logger.debug(f"Saved {len(self._projects)} projects ({len(data)} characters)")

    async def _save_after_delete(self, removed_ids: List[str]) -> None:
        await asyncio.gather(
            self._save_projects(),
            self.favorites.prune(removed_ids),
        )

    async def clear_all_data(self) -> None:
        """
        Erase every durable key and reset the in-memory state.

        Raises:
            StorageError: If the storage removal fails
        """
        try:
            await self._storage.multi_remove(ALL_KEYS)
        except Exception as e:
            logger.error(f"Error clearing stored data: {e}")
            raise

        self._projects = []
        self._projects_guard.reset()
        self.favorites.reset()
        self.history.reset()
        self._initialized = False
        logger.info("All data cleared")

    # ------------------------------------------
    # Tree traversal
    # ------------------------------------------

    def _find_project(self, project_id: str) -> Optional[Project]:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def _iter_buildings(self) -> Iterator[Tuple[Project, Building]]:
        for project in self._projects:
            for building in project.buildings:
                yield project, building

    def _iter_zones(self) -> Iterator[Tuple[Building, FunctionalZone]]:
        for _, building in self._iter_buildings():
            for zone in building.functional_zones:
                yield building, zone

    def _iter_shutters(self) -> Iterator[Tuple[FunctionalZone, Shutter]]:
        for _, zone in self._iter_zones():
            for shutter in zone.shutters:
                yield zone, shutter

    def _find_building(self, building_id: str) -> Optional[Tuple[Project, Building]]:
        return next((pair for pair in self._iter_buildings() if pair[1].id == building_id), None)

    def _find_zone(self, zone_id: str) -> Optional[Tuple[Building, FunctionalZone]]:
        return next((pair for pair in self._iter_zones() if pair[1].id == zone_id), None)

    def _find_shutter(self, shutter_id: str) -> Optional[Tuple[FunctionalZone, Shutter]]:
        return next((pair for pair in self._iter_shutters() if pair[1].id == shutter_id), None)

    # ------------------------------------------
    # Projects
    # ------------------------------------------

    async def get_projects(self) -> List[Project]:
        await self._ensure_projects()
        return copy.deepcopy(self._projects)

    async def get_project(self, project_id: str) -> Optional[Project]:
        await self._ensure_projects()
        project = self._find_project(project_id)
        return copy.deepcopy(project) if project else None

    async def create_project(
        self,
        name: str,
        city: Optional[str] = None,
        start_date: DateLike = None,
        end_date: DateLike = None
    ) -> Project:
        """
        Create a project with no buildings.

        Returns:
            A copy of the new project

        Raises:
            ValueError: If a date is given but cannot be read
            StorageError: If the tree cannot be saved
        """
        start_date = validate_date("start_date", start_date)
        end_date = validate_date("end_date", end_date)

        await self._ensure_projects()

        now = utc_now()
        project = Project(
            id=new_id(),
            name=name,
            city=city,
            start_date=start_date,
            end_date=end_date,
            created_at=now,
            updated_at=now,
        )
        self._projects.append(project)
        await self._save_projects()
        logger.info(f"Project created: {project.name}")
        return copy.deepcopy(project)

    async def update_project(self, project_id: str, **updates: Any) -> Optional[Project]:
        """
        Merge field updates into a project and bump its updated_at.

        Returns:
            A copy of the updated project, None if it doesn't exist

        Raises:
            ValueError: On an unknown field name
            StorageError: If the tree cannot be saved
        """
        await self._ensure_projects()
        project = self._find_project(project_id)
        if project is None:
            return None

        project.apply_updates(updates)
        project.updated_at = utc_now()
        await self._save_projects()
        return copy.deepcopy(project)

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project with all its buildings, zones and shutters."""
        await self._ensure_projects()
        project = self._find_project(project_id)
        if project is None:
            return False

        _detach(self._projects, project)
        await self._save_after_delete(_subtree_ids(project))
        logger.info(f"Project deleted: {project.name}")
        return True

    # ------------------------------------------
    # Buildings
    # ------------------------------------------

    async def get_building(self, building_id: str) -> Optional[Building]:
        await self._ensure_projects()
        found = self._find_building(building_id)
        return copy.deepcopy(found[1]) if found else None

    async def create_building(
        self,
        project_id: str,
        name: str,
        description: Optional[str] = None
    ) -> Optional[Building]:
        """Append a building to a project. None if the project doesn't exist."""
        await self._ensure_projects()
        project = self._find_project(project_id)
        if project is None:
            return None

        building = Building(
            id=new_id(),
            project_id=project_id,
            name=name,
            description=description,
            created_at=utc_now(),
        )
        project.buildings.append(building)
        await self._save_projects()
        return copy.deepcopy(building)

    async def update_building(self, building_id: str, **updates: Any) -> Optional[Building]:
        await self._ensure_projects()
        found = self._find_building(building_id)
        if found is None:
            return None

        _, building = found
        building.apply_updates(updates)
        await self._save_projects()
        return copy.deepcopy(building)

    async def delete_building(self, building_id: str) -> bool:
        """Delete a building with all its zones and shutters."""
        await self._ensure_projects()
        found = self._find_building(building_id)
        if found is None:
            return False

        project, building = found
        _detach(project.buildings, building)
        await self._save_after_delete(_subtree_ids(building))
        return True

    # ------------------------------------------
    # Functional zones
    # ------------------------------------------

    async def get_zone(self, zone_id: str) -> Optional[FunctionalZone]:
        await self._ensure_projects()
        found = self._find_zone(zone_id)
        return copy.deepcopy(found[1]) if found else None

    async def create_functional_zone(
        self,
        building_id: str,
        name: str,
        description: Optional[str] = None
    ) -> Optional[FunctionalZone]:
        """Append a zone to a building. None if the building doesn't exist."""
        await self._ensure_projects()
        found = self._find_building(building_id)
        if found is None:
            return None

        _, building = found
        zone = FunctionalZone(
            id=new_id(),
            building_id=building_id,
            name=name,
            description=description,
            created_at=utc_now(),
        )
        building.functional_zones.append(zone)
        await self._save_projects()
        return copy.deepcopy(zone)

    async def update_functional_zone(self, zone_id: str, **updates: Any) -> Optional[FunctionalZone]:
        await self._ensure_projects()
        found = self._find_zone(zone_id)
        if found is None:
            return None

        _, zone = found
        zone.apply_updates(updates)
        await self._save_projects()
        return copy.deepcopy(zone)

    async def delete_functional_zone(self, zone_id: str) -> bool:
        """Delete a zone with all its shutters."""
        await self._ensure_projects()
        found = self._find_zone(zone_id)
        if found is None:
            return False

        building, zone = found
        _detach(building.functional_zones, zone)
        await self._save_after_delete(_subtree_ids(zone))
        return True

    # ------------------------------------------
    # Shutters
    # ------------------------------------------

    async def get_shutter(self, shutter_id: str) -> Optional[Shutter]:
        await self._ensure_projects()
        found = self._find_shutter(shutter_id)
        return copy.deepcopy(found[1]) if found else None

    async def create_shutter(
        self,
        zone_id: str,
        name: str,
        shutter_type: Union[ShutterType, str],
        reference_flow: float,
        measured_flow: float,
        remarks: Optional[str] = None
    ) -> Optional[Shutter]:
        """
        Append a shutter to a zone.

        Returns:
            A copy of the new shutter, None if the zone doesn't exist

        Raises:
            ValueError: On an unknown type or a negative / non-numeric flow
            StorageError: If the tree cannot be saved
        """
        shutter_type = ShutterType.parse(shutter_type)
        reference_flow = validate_flow("reference_flow", reference_flow)
        measured_flow = validate_flow("measured_flow", measured_flow)

        await self._ensure_projects()
        found = self._find_zone(zone_id)
        if found is None:
            return None

        _, zone = found
        now = utc_now()
        shutter = Shutter(
            id=new_id(),
            zone_id=zone_id,
            name=name,
            type=shutter_type,
            reference_flow=reference_flow,
            measured_flow=measured_flow,
            remarks=remarks,
            created_at=now,
            updated_at=now,
        )
        zone.shutters.append(shutter)
        await self._save_projects()
        return copy.deepcopy(shutter)

    async def update_shutter(self, shutter_id: str, **updates: Any) -> Optional[Shutter]:
        await self._ensure_projects()
        found = self._find_shutter(shutter_id)
        if found is None:
            return None

        _, shutter = found
        shutter.apply_updates(updates)
        shutter.updated_at = utc_now()
        await self._save_projects()
        return copy.deepcopy(shutter)

    async def delete_shutter(self, shutter_id: str) -> bool:
        await self._ensure_projects()
        found = self._find_shutter(shutter_id)
        if found is None:
            return False

        zone, shutter = found
        _detach(zone.shutters, shutter)
        await self._save_after_delete([shutter.id])
        return True

    # ------------------------------------------
    # Favorites
    # ------------------------------------------

    async def get_favorite_projects(self) -> List[str]:
        return await self.favorites.get(FavoriteKind.PROJECTS)

    async def set_favorite_projects(self, ids: Iterable[str]) -> List[str]:
        return await self.favorites.set(FavoriteKind.PROJECTS, ids)

    async def get_favorite_buildings(self) -> List[str]:
        return await self.favorites.get(FavoriteKind.BUILDINGS)

    async def set_favorite_buildings(self, ids: Iterable[str]) -> List[str]:
        return await self.favorites.set(FavoriteKind.BUILDINGS, ids)

    async def get_favorite_zones(self) -> List[str]:
        return await self.favorites.get(FavoriteKind.ZONES)

    async def set_favorite_zones(self, ids: Iterable[str]) -> List[str]:
        return await self.favorites.set(FavoriteKind.ZONES, ids)

    async def get_favorite_shutters(self) -> List[str]:
        return await self.favorites.get(FavoriteKind.SHUTTERS)

    async def set_favorite_shutters(self, ids: Iterable[str]) -> List[str]:
        return await self.favorites.set(FavoriteKind.SHUTTERS, ids)

    # ------------------------------------------
    # Quick-calc history
    # ------------------------------------------

    async def get_quick_calc_history(self) -> List[QuickCalcHistoryItem]:
        return await self.history.get()

    async def add_quick_calc_history(self, result: ComplianceResult) -> QuickCalcHistoryItem:
        return await self.history.add(result)

    async def clear_quick_calc_history(self) -> None:
        await self.history.clear()

    # ------------------------------------------
    # Search / info
    # ------------------------------------------

    async def search_shutters(self, query: str) -> List[SearchResult]:
        """
        Multi-keyword AND search over the cached tree.

        Returns:
            Copies of the matching results, [] if the search fails
        """
        await self._ensure_projects()
        try:
            results = search_shutters(self._projects, query)
        except Exception as e:
            logger.error(f"Error searching shutters for {query!r}: {e}")
            return []
        logger.debug(f"Search {query!r}: {len(results)} results")
        return copy.deepcopy(results)

    async def get_storage_info(self) -> StorageInfo:
        await self._ensure_projects()
        total_shutters = sum(1 for _ in self._iter_shutters())
        size = len(serialize_projects(self._projects).encode("utf-8"))
        return StorageInfo(
            projects_count=len(self._projects),
            total_shutters=total_shutters,
            storage_size_bytes=size,
        )


def _subtree_ids(node: Union[Project, Building, FunctionalZone]) -> List[str]:
    """Ids of a node and every one of its descendants."""
    ids = [node.id]
    if isinstance(node, Project):
        for building in node.buildings:
            ids.extend(_subtree_ids(building))
    elif isinstance(node, Building):
        for zone in node.functional_zones:
            ids.extend(_subtree_ids(zone))
    elif isinstance(node, FunctionalZone):
        ids.extend(shutter.id for shutter in node.shutters)
    return ids


def _detach(items: List[Any], node: Any) -> None:
    # By identity: dataclass equality would compare whole subtrees
    for index, item in enumerate(items):
        if item is node:
            del items[index]
            return
