# ==============================================
# KeyValueStorage (durable storage contract)
# ==============================================
#
# PURPOSE:
#   The async key-value interface the store persists through. Values are
#   opaque strings (the store writes JSON text).
#
# CLASS: KeyValueStorage (abstract)
# ---------------------------------
#   - get(key) -> str | None       (async) None when the key is absent
#   - set(key, value) -> None      (async) create or overwrite
#   - multi_remove(keys) -> None   (async) absent keys are ignored
#
# EXCEPTION: StorageError
#   Raised by every backend for I/O or driver failures, wrapping the
#   original exception as __cause__.
#
# ==============================================

from abc import ABC, abstractmethod
from typing import Iterable, Optional


class StorageError(Exception):
    """A durable storage read or write failed."""


class KeyValueStorage(ABC):
    """Async key-value storage backing the project store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove every key in keys. Missing keys are not an error."""
