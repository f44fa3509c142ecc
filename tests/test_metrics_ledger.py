from prometheus_client import REGISTRY

from coffer.ledger import CurrencyType, Ledger
from coffer.metrics.ledger import get_charges_total, get_rewards_total
from coffer.store.memory import MemoryStore


def _sample(metric: str, labels: dict) -> float:
    val = REGISTRY.get_sample_value(metric, labels)
    return 0.0 if val is None else float(val)


def test_collectors_are_shared_between_calls():
    assert get_charges_total() is get_charges_total()
    assert get_rewards_total() is get_rewards_total()


def test_charge_outcomes_counted():
    led = Ledger(MemoryStore())
    led.start()
    ok = {"currency": "CurrencyB", "outcome": "ok"}
    short = {"currency": "CurrencyB", "outcome": "insufficient"}
    ok_before = _sample("ledger_charges_total", ok)
    short_before = _sample("ledger_charges_total", short)
    led.charge(CurrencyType.CURRENCY_B, 1)
    led.charge(CurrencyType.CURRENCY_B, 1_000)
    assert _sample("ledger_charges_total", ok) - ok_before == 1.0
    assert _sample("ledger_charges_total", short) - short_before == 1.0


def test_reward_amount_and_balance_gauge():
    led = Ledger(MemoryStore())
    led.start()
    labels = {"currency": "CurrencyC"}
    before = _sample("ledger_rewards_total", labels)
    led.reward(CurrencyType.CURRENCY_C, 4)
    assert _sample("ledger_rewards_total", labels) - before == 4.0
    assert _sample("ledger_balance", labels) == float(led.get_balance(CurrencyType.CURRENCY_C))


def test_events_counted_by_reason():
    led = Ledger(MemoryStore())
    before = _sample("ledger_events_total", {"reason": "sync"})
    led.start()
    assert _sample("ledger_events_total", {"reason": "sync"}) - before == 3.0
