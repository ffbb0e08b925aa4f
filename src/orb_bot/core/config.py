from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .types import sha256_hex, stable_json

DEFAULT_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"

CONTRACT_FILES = [
    "session.yaml",
    "signal_rules.yaml",
]

SESSION_BOUNDARY_KEYS = ["pre_market_start", "market_open", "orb_end", "market_close"]

DEFAULT_EVENT_LABELS = {
    "pre_market_open": "Pre-Market Open",
    "market_open": "Market Open",
    "orb_formation": "ORB Formation",
    "market_close": "Market Close",
    "next_pre_market": "Next Pre-Market",
}

RULE_KEYS = ["max_stop_distance", "min_volume_ratio", "vpa_lookback", "min_orb_bars"]


@dataclass(frozen=True)
class Contracts:
    root: Path
    docs: Dict[str, Dict[str, Any]]
    config_hash: str


def _require(condition: bool, msg: str) -> None:
    """Fail-closed helper for contract validation."""
    if not condition:
        raise ValueError(msg)


def parse_hhmm(value: Any, name: str) -> int:
    """Parse "HH:MM" into minutes since midnight."""
    _require(isinstance(value, str) and ":" in value, f"{name} must be an 'HH:MM' string")
    parts = value.split(":")
    _require(len(parts) == 2 and all(p.isdigit() for p in parts), f"{name} must be an 'HH:MM' string")
    hour, minute = int(parts[0]), int(parts[1])
    _require(0 <= hour < 24 and 0 <= minute < 60, f"{name} out of range: {value}")
    return hour * 60 + minute


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _positive_decimal(value: Any, name: str) -> Decimal:
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    _require(d.is_finite() and d > 0, f"{name} must be positive, got {value!r}")
    return d


def _positive_int(value: Any, name: str) -> int:
    _require(isinstance(value, int) and not isinstance(value, bool) and value >= 1,
             f"{name} must be an integer >= 1, got {value!r}")
    return value


@dataclass(frozen=True)
class SessionSchedule:
    """
    Daily session boundaries in exchange-local minutes since midnight.

    pre_market:  [pre_market_start, market_open)
    settling:    [market_open, orb_end)
    regular:     [orb_end, market_close)
    closed:      everything else
    """
    timezone: str = "America/New_York"
    pre_market_start: int = 4 * 60
    market_open: int = 9 * 60 + 30
    orb_end: int = 9 * 60 + 45
    market_close: int = 16 * 60
    event_labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_EVENT_LABELS))

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown session timezone: {self.timezone!r}")
        bounds = [self.pre_market_start, self.market_open, self.orb_end, self.market_close]
        _require(all(isinstance(b, int) and 0 <= b < 24 * 60 for b in bounds),
                 "session boundaries must be minutes within a day")
        _require(bounds == sorted(bounds) and len(set(bounds)) == len(bounds),
                 "session boundaries must be strictly increasing")
        missing = [k for k in DEFAULT_EVENT_LABELS if k not in self.event_labels]
        _require(not missing, f"session event_labels missing: {', '.join(missing)}")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class SignalRules:
    """Thresholds for the breakout / volume / risk rules."""
    max_stop_distance: Decimal = Decimal("0.60")
    min_volume_ratio: Decimal = Decimal("1.0")
    vpa_lookback: int = 3
    min_orb_bars: int = 3

    def __post_init__(self):
        object.__setattr__(self, "max_stop_distance",
                           _positive_decimal(self.max_stop_distance, "max_stop_distance"))
        object.__setattr__(self, "min_volume_ratio",
                           _positive_decimal(self.min_volume_ratio, "min_volume_ratio"))
        _positive_int(self.vpa_lookback, "vpa_lookback")
        _positive_int(self.min_orb_bars, "min_orb_bars")


def load_yaml_contract(contracts_dir: str, filename: str) -> Dict[str, Any]:
    """Load a single YAML contract file.

    Args:
        contracts_dir: Directory containing contract YAML files
        filename: Name of the YAML file to load (e.g., "session.yaml")

    Returns:
        Parsed YAML contract as a dictionary
    """
    root = Path(contracts_dir)
    contract_path = root / filename
    with contract_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_contracts(contracts_dir: Optional[str] = None) -> Contracts:
    root = Path(contracts_dir) if contracts_dir else DEFAULT_CONTRACTS_DIR
    docs: Dict[str, Dict[str, Any]] = {}
    for fn in CONTRACT_FILES:
        docs[fn] = load_yaml_contract(str(root), fn)

    docs["session.yaml"] = normalize_session_contract(docs["session.yaml"])
    docs["signal_rules.yaml"] = normalize_signal_rules(docs["signal_rules.yaml"])

    # Hash normalized representation (stable_json)
    config_hash = sha256_hex(stable_json(docs))
    return Contracts(root=root, docs=docs, config_hash=config_hash)


def normalize_session_contract(session: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize session contract: parse boundaries into minutes, validate order.

    Missing keys fall back to the US equities schedule.
    """
    _require(isinstance(session, dict), "session must be a mapping")
    defaults = SessionSchedule()

    tz_name = session.get("timezone", defaults.timezone)
    _require(isinstance(tz_name, str) and tz_name.strip(), "session.timezone must be a non-empty string")

    minutes: Dict[str, int] = {}
    for key in SESSION_BOUNDARY_KEYS:
        if key in session:
            minutes[key] = parse_hhmm(session[key], f"session.{key}")
        else:
            minutes[key] = getattr(defaults, key)

    labels = session.get("event_labels", {}) or {}
    _require(isinstance(labels, dict), "session.event_labels must be a mapping")
    unknown = [k for k in labels if k not in DEFAULT_EVENT_LABELS]
    _require(not unknown, f"unknown session.event_labels: {', '.join(unknown)}")
    merged_labels = {**DEFAULT_EVENT_LABELS, **labels}

    # Constructing the schedule runs the ordering and timezone checks
    SessionSchedule(timezone=tz_name.strip(), event_labels=merged_labels, **minutes)

    session["timezone"] = tz_name.strip()
    session["event_labels"] = merged_labels
    session["boundaries_min"] = minutes
    return session


def normalize_signal_rules(rules: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize signal rules: validate defaults and per-instrument overrides."""
    _require(isinstance(rules, dict), "signal_rules must be a mapping")

    unknown = [k for k in rules if k not in RULE_KEYS and k != "instruments"]
    _require(not unknown, f"unknown signal_rules keys: {', '.join(unknown)}")
    defaults = {k: rules[k] for k in RULE_KEYS if k in rules}
    SignalRules(**defaults)

    instruments = rules.get("instruments", []) or []
    _require(isinstance(instruments, list), "signal_rules.instruments must be a list")

    by_symbol: Dict[str, Any] = {}
    for idx, inst in enumerate(instruments):
        _require(isinstance(inst, dict), f"signal_rules.instruments[{idx}] must be an object")
        _require("symbol" in inst and isinstance(inst["symbol"], str) and inst["symbol"].strip(),
                 f"signal_rules.instruments[{idx}] missing non-empty 'symbol'")
        symbol = inst["symbol"].strip().upper()
        _require(symbol not in by_symbol, f"duplicate signal_rules.instruments symbol: {symbol}")
        overrides = {k: v for k, v in inst.items() if k != "symbol"}
        bad = [k for k in overrides if k not in RULE_KEYS]
        _require(not bad, f"signal_rules.instruments[{idx}] unknown keys: {', '.join(bad)}")
        SignalRules(**{**defaults, **overrides})
        by_symbol[symbol] = overrides

    rules["instruments"] = instruments
    rules["instruments_by_symbol"] = by_symbol
    return rules


def session_schedule(contracts: Contracts) -> SessionSchedule:
    session = contracts.docs["session.yaml"]
    return SessionSchedule(
        timezone=session["timezone"],
        event_labels=dict(session["event_labels"]),
        **session["boundaries_min"],
    )


def signal_rules(contracts: Contracts, symbol: Optional[str] = None) -> SignalRules:
    """Rules for a symbol: contract defaults with that instrument's overrides on top."""
    doc = contracts.docs["signal_rules.yaml"]
    base = SignalRules(**{k: doc[k] for k in RULE_KEYS if k in doc})
    if symbol is None:
        return base
    overrides = doc.get("instruments_by_symbol", {}).get(symbol.strip().upper())
    if not overrides:
        return base
    return replace(base, **overrides)

