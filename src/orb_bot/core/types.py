from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import hashlib
import json


def stable_json(obj: Any) -> str:
    # Deterministic JSON serialization
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 100.7 stays 100.7 instead of its binary expansion
    try:
        d = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def to_volume(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not a volume: {value!r}")
    if isinstance(value, int):
        return value
    d = to_decimal(value)
    if d != d.to_integral_value():
        raise ValueError(f"volume must be a whole number: {value!r}")
    return int(d)


class SessionPhase(str, Enum):
    """Exchange session phase, [start, end) windows in exchange-local time."""
    PRE_MARKET = "pre_market"
    SETTLING = "settling"
    REGULAR = "regular"
    CLOSED = "closed"


class SignalType(str, Enum):
    BREAKOUT_LONG = "breakout_long"
    BREAKOUT_SHORT = "breakout_short"
    ANOMALY = "anomaly"


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class MarketBar:
    """
    OHLCV bar. Prices are Decimal so threshold boundaries compare exactly.
    """
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int
    vwap: Optional[Decimal] = None

    def __post_init__(self):
        # Coerce float/str inputs; frozen, so go through object.__setattr__
        for name in ("open", "high", "low", "close"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if self.vwap is not None:
            object.__setattr__(self, "vwap", to_decimal(self.vwap))
        object.__setattr__(self, "volume", to_volume(self.volume))

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MarketBar":
        """Build a bar from a payload using short (ts,o,h,l,c,v) or long keys."""
        ts = d.get("ts", d.get("timestamp"))
        if ts is None:
            raise KeyError("bar payload missing 'ts'/'timestamp'")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)
        return MarketBar(
            timestamp=ts,
            open=d["o"] if "o" in d else d["open"],
            high=d["h"] if "h" in d else d["high"],
            low=d["l"] if "l" in d else d["low"],
            close=d["c"] if "c" in d else d["close"],
            volume=d.get("v", d.get("volume", 0)),
            vwap=d.get("vwap"),
        )

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "ts": self.timestamp.isoformat(),
            "o": float(self.open),
            "h": float(self.high),
            "l": float(self.low),
            "c": float(self.close),
            "v": self.volume,
        }
        if self.vwap is not None:
            payload["vwap"] = float(self.vwap)
        return payload


@dataclass(frozen=True)
class NextEvent:
    event: str
    minutes: int


@dataclass(frozen=True)
class PreMarketRange:
    pm_high: Decimal
    pm_low: Decimal


@dataclass(frozen=True)
class OpeningRange:
    orb_high: Decimal
    orb_low: Decimal
    orb_midline: Decimal


@dataclass(frozen=True)
class ORBLevels:
    """Pre-market and opening-range levels for one trading day."""
    pm_high: Decimal
    pm_low: Decimal
    orb_high: Decimal
    orb_low: Decimal
    orb_midline: Decimal
    calculated_at: datetime


@dataclass(frozen=True)
class Signal:
    """
    Outcome of evaluating one bar that broke out of the opening range.

    Callers act on is_valid / is_anomaly; a Signal existing only means the
    close left the range.
    """
    type: SignalType
    symbol: str
    candle: MarketBar
    orb_line: Decimal
    avg_volume3: Decimal
    volume_ratio: Decimal
    distance_to_stop: Decimal
    is_valid: bool
    rejection_reasons: Tuple[str, ...] = ()
    is_anomaly: bool = False
    anomaly_reason: Optional[str] = None


@dataclass(frozen=True)
class ConditionResult:
    passed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class SignalValidationResult:
    """Per-rule breakdown of a bar evaluation (diagnostics only)."""
    condition_a: ConditionResult
    condition_b: ConditionResult
    condition_c: ConditionResult
    overall_valid: bool
    is_anomaly: bool = False
    anomaly_reason: Optional[str] = None
    session_phase: Optional[SessionPhase] = None
    details: Dict[str, Any] = field(default_factory=dict)
