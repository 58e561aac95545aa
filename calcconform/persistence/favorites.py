# ==============================================
# FavoritesIndex
# ==============================================
#
# PURPOSE:
#   Four independent favorites lists, one per entity kind, each
#   persisted as an ordered JSON array of ids under its own key.
#
# SEMANTICS:
#   - set() replaces the whole list; there is no add/remove primitive,
#     callers read-modify-write.
#   - Ids are not checked against the tree when written.
#   - prune() is called by cascading deletes. Pruned ids are remembered
#     and a later set() drops them, so a favorites write that was
#     prepared before a delete cannot bring a deleted id back.
#   - The remembered ids grow by one entry per deleted node and are
#     only dropped by reset() (clear_all_data). A survey of hundreds of
#     shutters keeps this to a few hundred short strings.
#
# CLASS: FavoritesIndex
# ---------------------
#   - load() -> None                         (async, once)
#   - get(kind) -> list[str]                 (async, copy)
#   - set(kind, ids) -> list[str]            (async, persists one key)
#   - prune(ids) -> None                     (async, persists all keys)
#   - reset() -> None                        forget memory + load guard
#
# ==============================================

import asyncio
import json
import logging
from enum import Enum
from typing import Dict, Iterable, List, Set

from calcconform.storage.base import KeyValueStorage

from .load_guard import LoadGuard

logger = logging.getLogger(__name__)


class FavoriteKind(Enum):
    PROJECTS = "projects"
    BUILDINGS = "buildings"
    ZONES = "zones"
    SHUTTERS = "shutters"


FAVORITE_KEYS = {kind: f"calcconform_favorite_{kind.value}" for kind in FavoriteKind}


class FavoritesIndex:
    """Persisted favorites id lists for projects, buildings, zones and shutters."""

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage
        self._favorites: Dict[FavoriteKind, List[str]] = {kind: [] for kind in FavoriteKind}
        self._deleted_ids: Set[str] = set()
        self._guard = LoadGuard(self._load_all)

    @property
    def loaded(self) -> bool:
        return self._guard.loaded

    async def load(self) -> None:
        await self._guard.ensure()

    async def _load_all(self) -> None:
        await asyncio.gather(*(self._load_kind(kind) for kind in FavoriteKind))

    async def _load_kind(self, kind: FavoriteKind) -> None:
        key = FAVORITE_KEYS[kind]
        try:
            data = await self._storage.get(key)
            ids = json.loads(data) if data else []
            if not isinstance(ids, list):
                raise ValueError(f"expected a JSON array, got {type(ids).__name__}")
            self._favorites[kind] = [str(item) for item in ids]
        except Exception as e:
            logger.error(f"Error loading favorite {kind.value}, starting empty: {e}")
            self._favorites[kind] = []

    async def get(self, kind: FavoriteKind) -> List[str]:
        await self.load()
        return list(self._favorites[kind])

    async def set(self, kind: FavoriteKind, ids: Iterable[str]) -> List[str]:
        """
        Replace the favorites of one kind.

        Duplicates are dropped (first occurrence kept), as are ids removed
        by an earlier cascading delete.

        Returns:
            The list actually stored

        Raises:
            StorageError: If the write fails
        """
        await self.load()
        favorites = [
            item for item in dict.fromkeys(ids)
            if item not in self._deleted_ids
        ]
        self._favorites[kind] = favorites
        await self._save(kind)
        return list(favorites)

    async def prune(self, ids: Iterable[str]) -> None:
        """Remove deleted ids from all four lists and persist every list."""
        await self.load()
        removed = set(ids)
        self._deleted_ids.update(removed)
        for kind in FavoriteKind:
            self._favorites[kind] = [
                item for item in self._favorites[kind] if item not in removed
            ]
        await asyncio.gather(*(self._save(kind) for kind in FavoriteKind))

    async def _save(self, kind: FavoriteKind) -> None:
        try:
            await self._storage.set(FAVORITE_KEYS[kind], json.dumps(self._favorites[kind]))
        except Exception as e:
            logger.error(f"Error saving favorite {kind.value}: {e}")
            raise

    def reset(self) -> None:
        self._favorites = {kind: [] for kind in FavoriteKind}
        self._deleted_ids.clear()
        self._guard.reset()
