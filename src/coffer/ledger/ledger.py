from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Mapping, Optional, Set

from .currency import CurrencyType, DEFAULT_INITIAL_GRANT, INITIAL_GRANT_KEY
from ..events.bus import ChangeNotifier
from ..events.schema import Reason
from ..metrics.ledger import (
    get_charges_total,
    get_persist_errors_total,
    get_rewards_total,
    set_balance_gauge,
)
from ..store.base import KeyValueStore

log = logging.getLogger("coffer.ledger")


class PersistenceError(RuntimeError):
    """Raised after a failed store write when persist_errors="raise"."""


class Ledger:
    """Balances for a closed set of currencies, persisted after every change.

    Every mutation runs check -> mutate -> notify -> persist under one lock.
    Callbacks passed to `charge`/`reward` run before the mutation, so they see
    the old balance.
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[ChangeNotifier] = None,
        currencies=CurrencyType,
        initial_grant: Optional[Mapping] = None,
        persist_errors: str = "log",
    ):
        if persist_errors not in ("log", "raise"):
            raise ValueError(f"persist_errors must be 'log' or 'raise', got {persist_errors!r}")
        self.store = store
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self.currencies = currencies
        self.initial_grant = dict(DEFAULT_INITIAL_GRANT if initial_grant is None else initial_grant)
        self.persist_errors = persist_errors
        self._balances: Dict = {}
        self._lock = threading.RLock()
        # Currencies whose charge callback is running
        self._charging: Set = set()

    # ---- startup ----

    def start(self) -> None:
        with self._lock:
            self.initialize()
            self.load()
            self.apply_initial_grant_if_needed()
            self.notify_all()

    def initialize(self) -> None:
        with self._lock:
            for c in self.currencies:
                if c not in self._balances:
                    self._balances[c] = 0

    def load(self) -> None:
        with self._lock:
            for c in self.currencies:
                if self.store.has_key(c.value):
                    self._balances[c] = int(self.store.get_int(c.value) or 0)
                else:
                    self._balances[c] = 0
                set_balance_gauge(c.value, self._balances[c])
            log.info(f"loaded balances {self._describe()}")

    def apply_initial_grant_if_needed(self) -> bool:
        """Issue the starting allocation once per installation; True if it ran now."""
        with self._lock:
            if self.store.get_int(INITIAL_GRANT_KEY):
                return False
            for currency, amount in self.initial_grant.items():
                c = self._require(currency)
                self._balances[c] = int(amount)
                set_balance_gauge(c.value, self._balances[c])
                self.notifier.publish(c, self._balances[c], "grant")
            self._persist(extra={INITIAL_GRANT_KEY: 1})
            log.info(f"initial grant applied {self._describe()}")
            return True

    def notify_all(self) -> None:
        with self._lock:
            for c, bal in self._balances.items():
                self.notifier.publish(c, bal, "sync")

    # ---- queries ----

    def get_balance(self, currency) -> int:
        # Unknown identifiers read as 0 rather than raising
        try:
            c = self.currencies(currency)
        except ValueError:
            return 0
        with self._lock:
            return self._balances.get(c, 0)

    def snapshot(self) -> Dict:
        with self._lock:
            return dict(self._balances)

    # ---- mutations ----

    def charge(
        self,
        currency,
        amount: int,
        on_success: Optional[Callable[[], None]] = None,
        on_insufficient: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Debit `amount` if the balance covers it. Returns True on success.

        A zero amount always succeeds. Negative amounts raise ValueError,
        non-int amounts raise TypeError.
        """
        return self._charge(currency, amount, on_success, on_insufficient)

    def charge_item(
        self,
        currency,
        amount: int,
        item_name: str,
        on_success: Optional[Callable[[str], None]] = None,
        on_insufficient: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Like `charge`, but `on_success` receives `item_name` (purchase tracking)."""
        if not isinstance(item_name, str):
            raise TypeError(f"item_name must be a str, got {item_name!r}")
        return self._charge(currency, amount, on_success, on_insufficient, item_name=item_name)

    def _charge(self, currency, amount, on_success, on_insufficient, item_name: Optional[str] = None) -> bool:
        amount = self._check_amount(amount)
        with self._lock:
            c = self._require(currency)
            self._ensure_not_charging(c)
            if amount == 0 or self._balances[c] >= amount:
                if on_success is not None:
                    # The balance was checked above; it must not move until the deduction
                    self._charging.add(c)
                    try:
                        if item_name is None:
                            on_success()
                        else:
                            on_success(item_name)
                    finally:
                        self._charging.discard(c)
                get_charges_total().labels(c.value, "ok").inc()
                self._apply(c, self._balances[c] - amount, "charge", item=item_name)
                return True
            get_charges_total().labels(c.value, "insufficient").inc()
            log.info(f"insufficient {c.value}: have={self._balances[c]} need={amount} item={item_name}")
            if on_insufficient is not None:
                on_insufficient()
            return False

    def reward(self, currency, amount: int, on_increase: Optional[Callable[[], None]] = None) -> None:
        """Credit `amount` unconditionally; `on_increase` fires before the credit."""
        amount = self._check_amount(amount)
        with self._lock:
            c = self._require(currency)
            self._ensure_not_charging(c)
            if on_increase is not None:
                on_increase()
            get_rewards_total().labels(c.value).inc(amount)
            self._apply(c, self._balances[c] + amount, "reward")

    def set_balance(self, currency, amount: int) -> None:
        amount = self._check_int(amount)
        with self._lock:
            c = self._require(currency)
            self._ensure_not_charging(c)
            self._apply(c, amount, "set")

    # ---- internals ----

    def _apply(self, c, new_balance: int, reason: Reason, item: Optional[str] = None) -> None:
        self._balances[c] = new_balance
        set_balance_gauge(c.value, new_balance)
        self.notifier.publish(c, new_balance, reason, item=item)
        self._persist()

    def _persist(self, extra: Optional[Dict[str, int]] = None) -> None:
        """Write the full balance set (plus any reserved keys) and flush."""
        try:
            for c, bal in self._balances.items():
                self.store.set_int(c.value, bal)
            for key, value in (extra or {}).items():
                self.store.set_int(key, value)
            self.store.flush()
        except Exception as e:
            get_persist_errors_total().inc()
            if self.persist_errors == "raise":
                raise PersistenceError(f"failed to persist balances: {e}") from e
            log.exception("failed to persist balances; continuing with in-memory state")

    def _require(self, currency):
        try:
            c = self.currencies(currency)
        except ValueError:
            raise KeyError(f"unknown currency: {currency!r}") from None
        if c not in self._balances:
            # Mutations before initialize() still start from zero
            self._balances[c] = 0
        return c

    def _ensure_not_charging(self, c) -> None:
        if c in self._charging:
            raise RuntimeError(f"{c.value} changed from inside its own charge callback")

    @staticmethod
    def _check_int(amount) -> int:
        # bool is an int subclass; "3" and 3.5 must not be coerced
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError(f"amount must be an int, got {amount!r}")
        return amount

    @classmethod
    def _check_amount(cls, amount) -> int:
        amount = cls._check_int(amount)
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        return amount

    def _describe(self) -> str:
        return " ".join(f"{c.value}={bal}" for c, bal in self._balances.items())
