# ==============================================
# JsonFileStorage
# ==============================================
#
# PURPOSE:
#   Persist each key to its own file in a directory so that the
#   survey data survives process restarts.
#
# FILE STRUCTURE:
# ---------------
#   data/
#   ├── calcconform_projects.json           → whole project tree
#   ├── calcconform_favorite_projects.json  → ["id", ...]
#   ├── ...
#   └── calcconform_quick_calc_history.json → [{...}, ...]
#
# CLASS: JsonFileStorage
# ----------------------
#   Stateful: holds a reference to the storage directory.
#
#   Constructor:
#   ------------
#   - __init__(storage_dir: str = "data/")
#       Create storage directory if it doesn't exist.
#
#   Writes go to a temporary file first and are moved into place with
#   os.replace, so a crash mid-write never leaves a truncated file.
#   Blocking file I/O runs in a worker thread (asyncio.to_thread).
#
# ==============================================

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Iterable, Optional

from .base import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage(KeyValueStorage):
    """One ``<key>.json`` file per key inside ``storage_dir``."""

    def __init__(self, storage_dir: str = "data/"):
        """
        Initialize the file storage.

        Args:
            storage_dir: Directory holding the key files

        Raises:
            StorageError: If the directory cannot be created
        """
        self.storage_dir = Path(storage_dir)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self.storage_dir}: {e}") from e

    def path_for(self, key: str) -> Path:
        """Map a key to its file. Keys must be plain file-name characters."""
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key {key!r}")
        return self.storage_dir / f"{key}.json"

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), value)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        paths = [self.path_for(key) for key in keys]
        await asyncio.to_thread(self._remove, paths)

    def _read(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def _write(self, path: Path, value: str) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e
        logger.debug(f"Wrote {len(value)} characters to {path}")

    def _remove(self, paths) -> None:
        for path in paths:
            try:
                path.unlink()
                logger.debug(f"Deleted {path}")
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Cannot delete {path}: {e}") from e
