from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .types import MarketBar, ORBLevels, Signal, sha256_hex, stable_json

EventType = Literal[
    "LEVELS_COMPUTED",
    "SIGNAL_EMITTED",
]

# Canonical payload schemas

class MarketBarClosed(BaseModel):
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)
    vwap: Optional[float] = None

    @staticmethod
    def from_bar(bar: MarketBar) -> "MarketBarClosed":
        return MarketBarClosed(
            timestamp=bar.timestamp.isoformat(),
            open=float(bar.open),
            high=float(bar.high),
            low=float(bar.low),
            close=float(bar.close),
            volume=bar.volume,
            vwap=float(bar.vwap) if bar.vwap is not None else None,
        )

class LevelsComputed(BaseModel):
    symbol: str
    pm_high: float
    pm_low: float
    orb_high: float
    orb_low: float
    orb_midline: float
    calculated_at: str

    @staticmethod
    def from_levels(symbol: str, levels: ORBLevels) -> "LevelsComputed":
        return LevelsComputed(
            symbol=symbol,
            pm_high=float(levels.pm_high),
            pm_low=float(levels.pm_low),
            orb_high=float(levels.orb_high),
            orb_low=float(levels.orb_low),
            orb_midline=float(levels.orb_midline),
            calculated_at=levels.calculated_at.isoformat(),
        )

class SignalEmitted(BaseModel):
    type: Literal["breakout_long", "breakout_short", "anomaly"]
    symbol: str
    candle: MarketBarClosed
    orb_line: float
    avg_volume3: float
    volume_ratio: float
    distance_to_stop: float
    is_valid: bool
    rejection_reasons: List[str] = Field(default_factory=list)
    is_anomaly: bool = False
    anomaly_reason: Optional[str] = None

    @staticmethod
    def from_signal(signal: Signal) -> "SignalEmitted":
        return SignalEmitted(
            type=signal.type.value,
            symbol=signal.symbol,
            candle=MarketBarClosed.from_bar(signal.candle),
            orb_line=float(signal.orb_line),
            avg_volume3=float(signal.avg_volume3),
            volume_ratio=float(signal.volume_ratio),
            distance_to_stop=float(signal.distance_to_stop),
            is_valid=signal.is_valid,
            rejection_reasons=list(signal.rejection_reasons),
            is_anomaly=signal.is_anomaly,
            anomaly_reason=signal.anomaly_reason,
        )


@dataclass(frozen=True)
class Event:
    event_id: str
    stream_id: str
    ts: str            # ISO8601 timestamp of the bar or computation
    type: EventType
    payload: Dict[str, Any]
    config_hash: str

    @staticmethod
    def make(stream_id: str, ts: str, type: EventType, payload: BaseModel, config_hash: str) -> "Event":
        base = {
            "stream_id": stream_id,
            "ts": ts,
            "type": type,
            "payload": payload.model_dump(),
            "config_hash": config_hash,
        }
        eid = sha256_hex(stable_json(base))
        return Event(event_id=eid, **base)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
