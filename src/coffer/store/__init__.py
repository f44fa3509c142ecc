"""Persistence backends for balances.

Public API:
- KeyValueStore: get_int/set_int/has_key/flush contract.
- MemoryStore, SQLiteStore, RedisStore: concrete backends.
- open_store: build the backend named in Settings.
"""

from .base import KeyValueStore
from .memory import MemoryStore
from .sqlite_store import SQLiteStore


def open_store(settings) -> KeyValueStore:
    cfg = settings.store
    if cfg.backend == "memory":
        return MemoryStore()
    if cfg.backend == "sqlite":
        return SQLiteStore(cfg.path)
    if cfg.backend == "redis":
        from .redis_store import RedisStore
        return RedisStore(cfg.redis_url, prefix=cfg.redis_prefix)
    raise ValueError(f"unknown store backend: {cfg.backend}")


__all__ = ["KeyValueStore", "MemoryStore", "SQLiteStore", "open_store"]
