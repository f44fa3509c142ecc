import json
import logging

from coffer.events import BalanceChanged, ChangeNotifier
from coffer.ledger import CurrencyType


def test_subscribe_publish_unsubscribe():
    n = ChangeNotifier()
    got = []
    h = n.subscribe(got.append)
    assert n.listener_count == 1
    evt = n.publish(CurrencyType.CURRENCY_A, 12, "reward")
    assert got == [evt]
    assert evt.currency == "CurrencyA" and evt.balance == 12 and evt.reason == "reward"
    assert n.unsubscribe(h) is True
    assert n.unsubscribe(h) is False
    n.publish(CurrencyType.CURRENCY_A, 13, "reward")
    assert len(got) == 1


def test_handles_are_unique_and_delivery_follows_subscription_order():
    n = ChangeNotifier()
    order = []
    h1 = n.subscribe(lambda e: order.append("first"))
    h2 = n.subscribe(lambda e: order.append("second"))
    assert h1 != h2
    n.unsubscribe(h1)
    h3 = n.subscribe(lambda e: order.append("third"))
    assert h3 not in (h1, h2)
    n.publish("CurrencyB", 1, "set")
    assert order == ["second", "third"]


def test_late_subscriber_misses_earlier_events():
    n = ChangeNotifier()
    n.publish("CurrencyC", 5, "grant")
    got = []
    n.subscribe(got.append)
    n.publish("CurrencyC", 6, "reward")
    assert [e.balance for e in got] == [6]


def test_sequence_increases_per_publish():
    n = ChangeNotifier()
    seqs = [n.publish("CurrencyA", i, "set").sequence for i in range(3)]
    assert seqs == [1, 2, 3]


def test_failing_listener_does_not_block_others(caplog):
    n = ChangeNotifier()
    got = []

    def boom(evt):
        raise RuntimeError("ui gone")

    n.subscribe(boom)
    n.subscribe(got.append)
    n.publish("CurrencyA", 1, "charge")
    assert len(got) == 1
    assert "listener 1 failed" in caplog.text


def test_listener_may_unsubscribe_itself():
    n = ChangeNotifier()
    got = []
    handle = {}

    def once(evt):
        got.append(evt)
        n.unsubscribe(handle["h"])

    handle["h"] = n.subscribe(once)
    n.publish("CurrencyA", 1, "set")
    n.publish("CurrencyA", 2, "set")
    assert len(got) == 1


def test_publish_logs_compact_json_line(caplog):
    n = ChangeNotifier()
    with caplog.at_level(logging.INFO, logger="coffer.events"):
        n.publish("CurrencyB", 9, "charge", item="potion")
    line = [r.getMessage() for r in caplog.records if r.name == "coffer.events"][-1]
    payload = json.loads(line)
    assert payload["currency"] == "CurrencyB"
    assert payload["item"] == "potion"
    assert payload["event_type"] == "balance_changed"


def test_event_model_roundtrip():
    evt = BalanceChanged(currency="CurrencyA", balance=3, reason="sync", sequence=4)
    js = evt.model_dump_json()
    assert "balance_changed" in js
    assert BalanceChanged.model_validate_json(js) == evt
