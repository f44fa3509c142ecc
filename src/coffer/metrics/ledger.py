from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_charges_total: Optional[Counter] = None
_rewards_total: Optional[Counter] = None
_balance_gauge: Optional[Gauge] = None
_events_total: Optional[Counter] = None
_persist_errors_total: Optional[Counter] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing(name: str):
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) == name:
                return coll
    except Exception:
        pass
    return _NoOp()


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # Already registered (e.g. module reloaded in tests)
        return _existing(name)


def _safe_gauge_labels(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _existing(name)


def get_charges_total():
    """Counter: ledger_charges_total{currency,outcome}, outcome is ok|insufficient."""
    global _charges_total
    if _charges_total is None:
        _charges_total = _safe_counter("ledger_charges_total", "Charge attempts", ["currency", "outcome"])
    return _charges_total


def get_rewards_total():
    global _rewards_total
    if _rewards_total is None:
        _rewards_total = _safe_counter("ledger_rewards_total", "Rewards credited", ["currency"])
    return _rewards_total


def get_balance_gauge():
    global _balance_gauge
    if _balance_gauge is None:
        _balance_gauge = _safe_gauge_labels("ledger_balance", "Current balance", ["currency"])
    return _balance_gauge


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("ledger_events_total", "Balance change events published", ["reason"])
    return _events_total


def get_persist_errors_total():
    global _persist_errors_total
    if _persist_errors_total is None:
        _persist_errors_total = _safe_counter("ledger_persist_errors_total", "Failed store writes", [])
    return _persist_errors_total


def set_balance_gauge(currency: str, balance: int) -> None:
    try:
        get_balance_gauge().labels(currency=str(currency)).set(int(balance))
    except Exception:
        # Metrics are optional in constrained environments
        pass
