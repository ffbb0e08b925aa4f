from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from orb_bot.core.config import (
    DEFAULT_CONTRACTS_DIR,
    SignalRules,
    load_contracts,
    load_yaml_contract,
    session_schedule,
    signal_rules,
)


def write_contracts(tmp_path: Path, session: dict, rules: dict) -> str:
    (tmp_path / "session.yaml").write_text(yaml.safe_dump(session), encoding="utf-8")
    (tmp_path / "signal_rules.yaml").write_text(yaml.safe_dump(rules), encoding="utf-8")
    return str(tmp_path)


def test_all_contracts_load_and_normalize():
    """Test that all contracts load and normalization succeeds."""
    contracts = load_contracts()

    assert contracts.root == DEFAULT_CONTRACTS_DIR
    assert "session.yaml" in contracts.docs
    assert "signal_rules.yaml" in contracts.docs

    # Check normalization added lookup helpers
    assert contracts.docs["session.yaml"]["boundaries_min"] == {
        "pre_market_start": 240,
        "market_open": 570,
        "orb_end": 585,
        "market_close": 960,
    }
    assert "SPY" in contracts.docs["signal_rules.yaml"]["instruments_by_symbol"]

    # Check config hash is computed
    assert contracts.config_hash is not None
    assert len(contracts.config_hash) == 64


def test_config_hash_is_stable():
    assert load_contracts().config_hash == load_contracts().config_hash


def test_default_rules_match_builtin_defaults():
    contracts = load_contracts()
    assert signal_rules(contracts) == SignalRules()
    assert signal_rules(contracts, "SPY") == SignalRules()
    assert session_schedule(contracts).timezone == "America/New_York"


def test_instrument_overrides():
    contracts = load_contracts()
    qqq = signal_rules(contracts, "qqq")
    tsla = signal_rules(contracts, "TSLA")

    assert qqq.max_stop_distance == Decimal("0.80")
    assert qqq.min_volume_ratio == Decimal("1.0")
    assert tsla.min_volume_ratio == Decimal("1.2")
    assert signal_rules(contracts, "UNLISTED") == SignalRules()


def test_load_single_contract():
    doc = load_yaml_contract(str(DEFAULT_CONTRACTS_DIR), "session.yaml")
    assert doc["market_open"] == "09:30"


def test_empty_contract_files_fall_back_to_defaults(tmp_path):
    (tmp_path / "session.yaml").write_text("", encoding="utf-8")
    (tmp_path / "signal_rules.yaml").write_text("", encoding="utf-8")
    assert load_yaml_contract(str(tmp_path), "session.yaml") == {}

    contracts = load_contracts(str(tmp_path))
    assert session_schedule(contracts).market_open == 9 * 60 + 30
    assert signal_rules(contracts) == SignalRules()


def test_custom_session_contract(tmp_path):
    path = write_contracts(
        tmp_path,
        {"timezone": "Europe/London", "pre_market_start": "07:00", "market_open": "08:00",
         "orb_end": "08:15", "market_close": "16:30"},
        {},
    )
    schedule = session_schedule(load_contracts(path))
    assert schedule.timezone == "Europe/London"
    assert schedule.orb_end == 8 * 60 + 15
    assert schedule.event_labels["market_close"] == "Market Close"


@pytest.mark.parametrize("session", [
    {"market_open": "09:50"},                  # after orb_end
    {"market_open": 570},                      # not HH:MM
    {"market_close": "25:00"},
    {"timezone": "Nowhere/Special"},
    {"event_labels": {"lunch": "Lunch"}},
])
def test_invalid_session_contract(tmp_path, session):
    path = write_contracts(tmp_path, session, {})
    with pytest.raises(ValueError):
        load_contracts(path)


@pytest.mark.parametrize("rules", [
    {"max_stop_distance": "-0.5"},
    {"min_volume_ratio": "abc"},
    {"vpa_lookback": 0},
    {"min_orb_bars": 2.5},
    {"stop_distance": "0.6"},
    {"instruments": [{"symbol": "SPY"}, {"symbol": "spy"}]},
    {"instruments": [{"max_stop_distance": "0.5"}]},
    {"instruments": [{"symbol": "SPY", "leverage": 2}]},
])
def test_invalid_signal_rules(tmp_path, rules):
    path = write_contracts(tmp_path, {}, rules)
    with pytest.raises(ValueError):
        load_contracts(path)
