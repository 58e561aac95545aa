# ==============================================
# PERSISTENCE (load-once cache over durable storage)
# ==============================================
#
# This package keeps the survey tree, the favorites and the quick-calc
# history in memory and writes them back to durable storage on change.
#
# Modules:
# --------
# - project_store.py  → ProjectStore: CRUD, cascade, search, storage info
# - favorites.py      → FavoritesIndex: four persisted id lists
# - history.py        → QuickCalcHistory: last N quick calculations
# - load_guard.py     → Read-once helper shared by the three caches
#
# ==============================================

from .favorites import FavoriteKind, FavoritesIndex
from .history import QuickCalcHistory, QuickCalcHistoryItem
from .project_store import ProjectStore, StorageInfo

__all__ = [
    "FavoriteKind",
    "FavoritesIndex",
    "QuickCalcHistory",
    "QuickCalcHistoryItem",
    "ProjectStore",
    "StorageInfo",
]
