from __future__ import annotations

import time
from typing import Literal, Optional
from pydantic import BaseModel, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


Reason = Literal["sync", "grant", "charge", "reward", "set"]


class BalanceChanged(BaseModel):
    """One currency's balance after a change.

    `sync` events come from the startup broadcast; every other reason is a
    single mutation. `sequence` is per notifier and strictly increasing.
    """
    event_type: Literal["balance_changed"] = "balance_changed"
    currency: str
    balance: int
    reason: Reason
    sequence: int = 0
    item: Optional[str] = None
    ts: int = Field(default_factory=_now_ms)
