from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Optional

from .schema import BalanceChanged, Reason
from ..metrics.ledger import get_events_total


Listener = Callable[[BalanceChanged], None]

log = logging.getLogger("coffer.events")


class ChangeNotifier:
    """In-process, synchronous fan-out of balance changes.

    Listeners are keyed by the handle returned from `subscribe`; delivery
    follows subscription order. Nothing is queued: a listener only sees events
    published while it is subscribed.
    """

    def __init__(self) -> None:
        self._listeners: Dict[int, Listener] = {}
        self._next_handle = 1
        self._sequence = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, callback: Listener) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._listeners[handle] = callback
        return handle

    def unsubscribe(self, handle: int) -> bool:
        return self._listeners.pop(handle, None) is not None

    def publish(self, currency, balance: int, reason: Reason, item: Optional[str] = None) -> BalanceChanged:
        """Deliver one event to every current listener and log it as a JSON line.

        A failing listener is logged and skipped; it never aborts the caller's
        mutation or starves the listeners after it.
        """
        self._sequence += 1
        evt = BalanceChanged(
            currency=getattr(currency, "value", str(currency)),
            balance=int(balance),
            reason=reason,
            sequence=self._sequence,
            item=item,
        )
        try:
            get_events_total().labels(reason).inc()
        except Exception:
            pass
        log.info(json.dumps(evt.model_dump(exclude_none=True), separators=(",", ":")))
        # Snapshot so a listener may unsubscribe itself mid-delivery
        for handle, callback in list(self._listeners.items()):
            try:
                callback(evt)
            except Exception:
                log.exception(f"listener {handle} failed on {evt.currency} seq={evt.sequence}")
        return evt
