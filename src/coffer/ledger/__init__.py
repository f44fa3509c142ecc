"""Ledger package.

Public API:
- Ledger: per-currency balances with charge/reward/set, persisted after every change.
- CurrencyType: the closed set of currency identifiers.
- PersistenceError: raised on store failure when persist_errors="raise".
"""

from .currency import CurrencyType, DEFAULT_INITIAL_GRANT, INITIAL_GRANT_KEY  # re-export
from .ledger import Ledger, PersistenceError  # re-export
