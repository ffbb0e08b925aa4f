"""
Diagnostic twin of SignalDetector.

Runs the same rule primitives but never short-circuits: every call returns a
full condition-by-condition breakdown, with B and C marked as failed (and
why) when they cannot be evaluated.
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.config import SignalRules
from ..core.types import ConditionResult, MarketBar, SignalValidationResult
from .data_layer import validate_series
from .rules import check_breakout, check_risk, check_volume
from .session_clock import SessionClock

NO_DIRECTION = "No breakout direction: close is inside the ORB range"


class SignalValidator:

    def __init__(self, clock: Optional[SessionClock] = None, rules: Optional[SignalRules] = None):
        self.clock = clock or SessionClock()
        self.rules = rules or SignalRules()

    def validate(
        self,
        current: MarketBar,
        preceding: Sequence[MarketBar],
        orb_high: Decimal,
        orb_low: Decimal,
    ) -> SignalValidationResult:
        """
        The session phase is reported but does not affect overall_valid;
        gating on the phase is the detector's job. Malformed or unordered
        bars raise InvalidBarError.
        """
        validate_series([*preceding, current], self.clock.tz)
        phase = self.clock.classify(current.timestamp)
        details: Dict[str, Any] = {"close": current.close, "orb_high": orb_high, "orb_low": orb_low}

        breakout = check_breakout(current.close, orb_high, orb_low)
        cond_a = ConditionResult(breakout.passed, breakout.reason)

        if not breakout.passed:
            return SignalValidationResult(
                condition_a=cond_a,
                condition_b=ConditionResult(False, NO_DIRECTION),
                condition_c=ConditionResult(False, NO_DIRECTION),
                overall_valid=False,
                session_phase=phase,
                details=details,
            )

        volume = check_volume(current, preceding, self.rules)
        risk = check_risk(current.close, breakout.orb_line, self.rules)
        details.update(
            direction=breakout.direction.value,
            orb_line=breakout.orb_line,
            avg_volume=volume.avg_volume,
            volume_ratio=volume.volume_ratio,
            distance_to_stop=risk.distance,
        )

        return SignalValidationResult(
            condition_a=cond_a,
            condition_b=ConditionResult(volume.passed, volume.reason),
            condition_c=ConditionResult(risk.passed, risk.reason),
            overall_valid=volume.passed and risk.passed and not volume.is_anomaly,
            is_anomaly=volume.is_anomaly,
            anomaly_reason=volume.anomaly_reason,
            session_phase=phase,
            details=details,
        )
