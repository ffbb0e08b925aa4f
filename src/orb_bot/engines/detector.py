"""
Per-bar ORB breakout decision.

Pipeline for one bar:
  session gate -> history gate -> A: breakout -> B: volume/VPA -> C: risk

Only the gates and condition A can suppress the Signal entirely. Once the
close is outside the opening range a Signal is always returned, and the
B/C failures and the anomaly flag are reported on it.
"""

from decimal import Decimal
from typing import List, Optional, Sequence

from ..core.config import SignalRules
from ..core.types import Direction, MarketBar, SessionPhase, Signal, SignalType
from .data_layer import validate_series
from .rules import check_breakout, check_risk, check_volume
from .session_clock import SessionClock


class SignalDetector:
    """
    Evaluates bars against the opening range.
    """

    def __init__(self, clock: Optional[SessionClock] = None, rules: Optional[SignalRules] = None):
        self.clock = clock or SessionClock()
        self.rules = rules or SignalRules()

    def detect(
        self,
        current: MarketBar,
        preceding: Sequence[MarketBar],
        orb_high: Decimal,
        orb_low: Decimal,
        symbol: str,
    ) -> Optional[Signal]:
        """
        Returns None outside the regular session, with fewer than
        `vpa_lookback` preceding bars, or when the close is inside the range.

        Raises InvalidBarError when any bar is malformed or the history does
        not strictly precede `current`.
        """
        validate_series([*preceding, current], self.clock.tz)
        if self.clock.classify(current.timestamp) != SessionPhase.REGULAR:
            return None
        if len(preceding) < self.rules.vpa_lookback:
            return None

        breakout = check_breakout(current.close, orb_high, orb_low)
        if not breakout.passed:
            return None

        volume = check_volume(current, preceding, self.rules)
        risk = check_risk(current.close, breakout.orb_line, self.rules)

        # Every failing condition is listed, not just the first
        reasons: List[str] = []
        if not volume.passed:
            reasons.append(volume.reason)
        if not risk.passed:
            reasons.append(risk.reason)

        if volume.is_anomaly:
            signal_type = SignalType.ANOMALY
        elif breakout.direction == Direction.LONG:
            signal_type = SignalType.BREAKOUT_LONG
        else:
            signal_type = SignalType.BREAKOUT_SHORT

        return Signal(
            type=signal_type,
            symbol=symbol,
            candle=current,
            orb_line=breakout.orb_line,
            avg_volume3=volume.avg_volume,
            volume_ratio=volume.volume_ratio,
            distance_to_stop=risk.distance,
            is_valid=volume.passed and risk.passed and not volume.is_anomaly,
            rejection_reasons=tuple(reasons),
            is_anomaly=volume.is_anomaly,
            anomaly_reason=volume.anomaly_reason,
        )
