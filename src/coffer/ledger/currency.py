"""Currency identifiers and the reserved store keys.

The enum value doubles as the persistence key, so renaming a member's value
orphans whatever balance was stored under the old name.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict


class CurrencyType(str, Enum):
    CURRENCY_A = "CurrencyA"
    CURRENCY_B = "CurrencyB"
    CURRENCY_C = "CurrencyC"


# Flag written once the starting allocation has been issued.
INITIAL_GRANT_KEY = "initial_reward"

DEFAULT_INITIAL_GRANT: Dict[CurrencyType, int] = {
    CurrencyType.CURRENCY_A: 10,
    CurrencyType.CURRENCY_B: 10,
    CurrencyType.CURRENCY_C: 5,
}


def parse_currency(name: str, currencies=CurrencyType):
    """Resolve a currency from its store key ("CurrencyA") or member name ("CURRENCY_A")."""
    for c in currencies:
        if name == c.value or name == c.name:
            return c
    raise KeyError(f"unknown currency: {name}")
