"""
Main entrypoint for coffer.

What it does:
- Loads settings from `config/config.yaml` plus environment overrides.
- Opens the configured store and wires one ChangeNotifier and one Ledger
  (`build_ledger`); the ledger is passed to whoever needs it, never looked up
  globally.
- Boots the ledger (initialize, load, one-time grant, full broadcast), applies
  an optional admin operation, prints `name=value` balance lines and exits.

Where it is used:
- `coffer` console script and `python -m coffer.main`.

Examples:
    coffer balance
    coffer charge CurrencyA 4 --item sword
    coffer reward CurrencyC 3
    coffer set CurrencyB 0
"""
import argparse
import logging
import sys
from typing import List, Optional, Tuple

import yaml
from pydantic import ValidationError

from coffer.config.loader import Settings, load_settings
from coffer.events.bus import ChangeNotifier
from coffer.events.schema import BalanceChanged
from coffer.ledger.currency import parse_currency
from coffer.ledger.ledger import Ledger
from coffer.metrics.core import start_server_safe
from coffer.store import KeyValueStore, open_store

EXIT_INSUFFICIENT = 1
EXIT_BAD_INPUT = 2


def build_ledger(settings: Settings, store: Optional[KeyValueStore] = None) -> Tuple[Ledger, KeyValueStore]:
    """Construct the session's single ledger from settings (not started yet)."""
    store = store if store is not None else open_store(settings)
    ledger = Ledger(
        store,
        notifier=ChangeNotifier(),
        initial_grant=settings.grant_by_currency(),
        persist_errors=settings.persist_errors,
    )
    return ledger, store


def _log_change(evt: BalanceChanged) -> None:
    logging.debug(f"{evt.reason}: {evt.currency} -> {evt.balance}")


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="coffer", description="Inspect or adjust persisted game currency balances.")
    p.add_argument("--config", default=None, help="path to config.yaml (default: $COFFER_CONFIG or config/config.yaml)")
    sub = p.add_subparsers(dest="command")
    sub.add_parser("balance", help="print all balances")
    for name, help_text in (("charge", "debit if the balance covers it"), ("reward", "credit"), ("set", "overwrite")):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("currency")
        sp.add_argument("amount", type=int)
        if name == "charge":
            sp.add_argument("--item", default=None, help="item being purchased")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        print(f"error: invalid config: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    start_server_safe(settings.metrics_port)

    ledger, store = build_ledger(settings)
    try:
        ledger.notifier.subscribe(_log_change)
        ledger.start()
        code = 0
        if args.command in ("charge", "reward", "set"):
            try:
                currency = parse_currency(args.currency, ledger.currencies)
                if args.command == "charge":
                    ok = ledger.charge_item(currency, args.amount, args.item) if args.item else ledger.charge(currency, args.amount)
                    if not ok:
                        print(f"insufficient {currency.value}: have {ledger.get_balance(currency)}, need {args.amount}", file=sys.stderr)
                        code = EXIT_INSUFFICIENT
                elif args.command == "reward":
                    ledger.reward(currency, args.amount)
                else:
                    ledger.set_balance(currency, args.amount)
            except (KeyError, ValueError) as e:
                print(f"error: {e}", file=sys.stderr)
                return EXIT_BAD_INPUT
        for c, bal in ledger.snapshot().items():
            print(f"{c.value}={bal}")
        return code
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
