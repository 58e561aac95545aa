from typing import Dict, Iterable, Optional

from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """
    Dict-backed storage for tests and throwaway sessions.

    Nothing survives the process. ``read_count`` counts get() calls so
    callers can check the load-once behaviour of the store.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.read_count = 0

    async def get(self, key: str) -> Optional[str]:
        self.read_count += 1
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)
