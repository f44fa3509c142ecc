from __future__ import annotations

from typing import Dict, Optional

from .base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Process-local store; `committed` holds only what has been flushed."""

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self.committed: Dict[str, int] = dict(initial or {})
        self._staged: Dict[str, int] = {}
        self.flush_count = 0

    def get_int(self, key: str) -> Optional[int]:
        if key in self._staged:
            return self._staged[key]
        return self.committed.get(key)

    def set_int(self, key: str, value: int) -> None:
        self._staged[key] = int(value)

    def has_key(self, key: str) -> bool:
        return key in self._staged or key in self.committed

    def flush(self) -> None:
        self.committed.update(self._staged)
        self._staged.clear()
        self.flush_count += 1

    @property
    def pending(self) -> Dict[str, int]:
        return dict(self._staged)
