import pytest
from pydantic import ValidationError

from coffer.config.loader import load_settings
from coffer.ledger import CurrencyType


def _clear_env(monkeypatch):
    for var in ("COFFER_CONFIG", "COFFER_STORE_BACKEND", "COFFER_STORE_PATH", "REDIS_URL", "PROMETHEUS_PORT"):
        monkeypatch.delenv(var, raising=False)


def test_missing_file_yields_defaults(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    s = load_settings(str(tmp_path / "absent.yaml"))
    assert s.store.backend == "sqlite"
    assert s.persist_errors == "log"
    assert s.metrics_port == 0
    assert s.grant_by_currency() == {
        CurrencyType.CURRENCY_A: 10,
        CurrencyType.CURRENCY_B: 10,
        CurrencyType.CURRENCY_C: 5,
    }


def test_yaml_values_and_env_overrides(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "store:\n"
        "  backend: memory\n"
        "initial_grant:\n"
        "  CurrencyA: 50\n"
        "persist_errors: raise\n"
    )
    s = load_settings(str(cfg))
    assert s.store.backend == "memory"
    assert s.persist_errors == "raise"
    assert s.grant_by_currency() == {CurrencyType.CURRENCY_A: 50}

    monkeypatch.setenv("COFFER_STORE_BACKEND", "sqlite")
    monkeypatch.setenv("COFFER_STORE_PATH", str(tmp_path / "b.sqlite"))
    monkeypatch.setenv("PROMETHEUS_PORT", "9109")
    s = load_settings(str(cfg))
    assert s.store.backend == "sqlite"
    assert s.store.path == str(tmp_path / "b.sqlite")
    assert s.metrics_port == 9109


def test_config_path_from_env(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    cfg = tmp_path / "alt.yaml"
    cfg.write_text("metrics_port: 9200\n")
    monkeypatch.setenv("COFFER_CONFIG", str(cfg))
    assert load_settings().metrics_port == 9200


def test_grant_member_names_accepted(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    cfg = tmp_path / "config.yaml"
    cfg.write_text("initial_grant:\n  CURRENCY_B: 7\n")
    assert load_settings(str(cfg)).grant_by_currency() == {CurrencyType.CURRENCY_B: 7}


@pytest.mark.parametrize(
    "body",
    [
        "initial_grant:\n  Gems: 5\n",
        "initial_grant:\n  CurrencyA: -1\n",
        "persist_errors: ignore\n",
        "store:\n  backend: etcd\n",
    ],
)
def test_invalid_config_rejected(tmp_path, monkeypatch, body):
    _clear_env(monkeypatch)
    cfg = tmp_path / "config.yaml"
    cfg.write_text(body)
    with pytest.raises((ValidationError, ValueError)):
        load_settings(str(cfg))
