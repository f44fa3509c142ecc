from __future__ import annotations

import logging
from typing import Dict, Optional

import redis

from .base import KeyValueStore

log = logging.getLogger("coffer.store")


class RedisStore(KeyValueStore):
    """Balances kept as plain string keys in a Redis database.

    Staged writes go out as a single MSET inside a transactional pipeline on
    flush, so a reader never sees half of a balance set.
    """

    def __init__(self, url: str = "redis://localhost:6379/0", prefix: str = "", client=None):
        self.url = url
        self.prefix = prefix
        self._r = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._staged: Dict[str, int] = {}

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_int(self, key: str) -> Optional[int]:
        if key in self._staged:
            return self._staged[key]
        raw = self._r.get(self._k(key))
        return None if raw is None else int(raw)

    def set_int(self, key: str, value: int) -> None:
        self._staged[key] = int(value)

    def has_key(self, key: str) -> bool:
        return key in self._staged or bool(self._r.exists(self._k(key)))

    def flush(self) -> None:
        if not self._staged:
            return
        pipe = self._r.pipeline(transaction=True)
        pipe.mset({self._k(k): v for k, v in self._staged.items()})
        pipe.execute()
        log.debug(f"flushed {len(self._staged)} keys to {self.url}")
        self._staged.clear()

    def close(self) -> None:
        try:
            self._r.close()
        except Exception:
            pass
