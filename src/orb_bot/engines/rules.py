"""
Rule primitives shared by SignalDetector and SignalValidator.

Pure functions with no logging or state, so the live decision path and the
diagnostic breakdown cannot drift apart:

- check_breakout: condition A, close strictly outside the opening range
- check_volume:   condition B, volume ratio plus the VPA anomaly check
- check_risk:     condition C, distance from close to the ORB line
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from ..core.config import SignalRules
from ..core.types import Direction, MarketBar

ZERO = Decimal("0")


@dataclass(frozen=True)
class BreakoutCheck:
    passed: bool
    direction: Optional[Direction] = None
    orb_line: Optional[Decimal] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class VolumeCheck:
    passed: bool
    avg_volume: Decimal = ZERO
    volume_ratio: Decimal = ZERO
    reason: Optional[str] = None
    is_anomaly: bool = False
    anomaly_reason: Optional[str] = None


@dataclass(frozen=True)
class RiskCheck:
    passed: bool
    distance: Decimal
    reason: Optional[str] = None


def check_breakout(close: Decimal, orb_high: Decimal, orb_low: Decimal) -> BreakoutCheck:
    """
    Strict close-only breakout. A close equal to either edge is inside the range.
    """
    if close > orb_high:
        return BreakoutCheck(True, Direction.LONG, orb_high)
    if close < orb_low:
        return BreakoutCheck(True, Direction.SHORT, orb_low)
    return BreakoutCheck(
        passed=False,
        reason=f"Close {close} inside ORB range [{orb_low}, {orb_high}]",
    )


def check_anomaly(current: MarketBar, previous: Optional[MarketBar]) -> Optional[str]:
    """
    Price moved while volume fell versus the immediately preceding bar.

    Returns the anomaly reason, or None.
    """
    if previous is None:
        return None
    price_change = current.close - current.open
    if price_change == 0 or current.volume >= previous.volume:
        return None
    move = "rising" if price_change > 0 else "falling"
    return (
        f"VPA anomaly: price {move} on declining volume "
        f"({current.volume} < previous {previous.volume})"
    )


def average_volume(bars: Sequence[MarketBar]) -> Decimal:
    if not bars:
        return ZERO
    return Decimal(sum(b.volume for b in bars)) / Decimal(len(bars))


def check_volume(current: MarketBar, preceding: Sequence[MarketBar], rules: SignalRules) -> VolumeCheck:
    """
    Volume ratio against the last `vpa_lookback` preceding bars, plus the
    anomaly check. The anomaly is reported independently of the ratio result.
    """
    previous = preceding[-1] if preceding else None
    anomaly_reason = check_anomaly(current, previous)
    anomaly = {"is_anomaly": anomaly_reason is not None, "anomaly_reason": anomaly_reason}

    lookback = rules.vpa_lookback
    if len(preceding) < lookback:
        return VolumeCheck(
            passed=False,
            reason=f"Insufficient candle history: need {lookback} preceding bars, have {len(preceding)}",
            **anomaly,
        )

    avg = average_volume(preceding[-lookback:])
    if avg == 0:
        return VolumeCheck(
            passed=False,
            reason=f"Insufficient volume data: {lookback}-bar average volume is 0",
            **anomaly,
        )

    ratio = Decimal(current.volume) / avg
    if ratio > rules.min_volume_ratio:
        return VolumeCheck(True, avg, ratio, **anomaly)
    return VolumeCheck(
        passed=False,
        avg_volume=avg,
        volume_ratio=ratio,
        reason=f"Volume ratio {ratio:.2f}x not above {rules.min_volume_ratio}x threshold",
        **anomaly,
    )


def check_risk(close: Decimal, orb_line: Decimal, rules: SignalRules) -> RiskCheck:
    """Distance from close to the ORB line must not exceed max_stop_distance (inclusive)."""
    distance = abs(close - orb_line)
    if distance <= rules.max_stop_distance:
        return RiskCheck(True, distance)
    return RiskCheck(
        passed=False,
        distance=distance,
        reason=f"Stop distance {distance} exceeds max {rules.max_stop_distance}",
    )
