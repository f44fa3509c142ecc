"""
Configuration loader for coffer.

What it does:
- Reads static settings from `config/config.yaml` (or the path in `COFFER_CONFIG`).
- Applies environment overrides: `COFFER_STORE_BACKEND`, `COFFER_STORE_PATH`,
  `REDIS_URL`, `PROMETHEUS_PORT`.
- Validates the result with Pydantic models. A missing file yields defaults.

Where it is used:
- Called by `coffer.main` to build the store and the ledger.

Key outputs:
- `Settings` with the store backend, the one-time starting grant, the
  persistence failure policy and the metrics port.
"""

import os
import pathlib
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..ledger.currency import CurrencyType, DEFAULT_INITIAL_GRANT, parse_currency

DEFAULT_CONFIG_PATH = "config/config.yaml"


class StoreConfig(BaseModel):
    """Where balances are persisted."""
    backend: Literal["memory", "sqlite", "redis"] = "sqlite"
    path: str = "data/coffer.sqlite"
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = ""


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    store: StoreConfig = Field(default_factory=StoreConfig)
    initial_grant: Dict[str, int] = Field(
        default_factory=lambda: {c.value: amt for c, amt in DEFAULT_INITIAL_GRANT.items()}
    )
    persist_errors: Literal["log", "raise"] = "log"
    metrics_port: int = 0

    @field_validator("initial_grant")
    @classmethod
    def known_currencies(cls, v):
        for name, amount in v.items():
            try:
                parse_currency(name)
            except KeyError:
                raise ValueError(f"initial grant names unknown currency: {name}") from None
            if int(amount) < 0:
                raise ValueError(f"initial grant for {name} must be >= 0, got {amount}")
        return v

    def grant_by_currency(self) -> Dict[CurrencyType, int]:
        return {parse_currency(name): int(amt) for name, amt in self.initial_grant.items()}


def _env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    store = dict(config.get("store") or {})
    if os.getenv("COFFER_STORE_BACKEND"):
        store["backend"] = os.environ["COFFER_STORE_BACKEND"]
    if os.getenv("COFFER_STORE_PATH"):
        store["path"] = os.environ["COFFER_STORE_PATH"]
    if os.getenv("REDIS_URL"):
        store["redis_url"] = os.environ["REDIS_URL"]
    config["store"] = store
    if os.getenv("PROMETHEUS_PORT"):
        config["metrics_port"] = int(os.environ["PROMETHEUS_PORT"])
    return config


def load_settings(path: Optional[str] = None) -> Settings:
    """Load YAML config, apply env overrides, and return validated Settings."""
    p = pathlib.Path(path or os.getenv("COFFER_CONFIG", DEFAULT_CONFIG_PATH))
    config: Dict[str, Any] = {}
    if p.exists():
        with open(p, "r") as f:
            config = yaml.safe_load(f) or {}
    return Settings(**_env_overrides(config))
