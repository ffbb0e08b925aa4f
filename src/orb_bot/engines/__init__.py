"""
ORB Breakout Engines

- SessionClock: exchange-local session phases and next-event countdown
- LevelCalculator: pre-market range and opening-range levels
- SignalDetector: per-bar breakout / VPA / risk decision
- SignalValidator: rule-by-rule diagnostic breakdown
- BreakoutSession: per-instrument fold of the detector over a bar stream
"""

from .session_clock import SessionClock
from .levels import LevelCalculator
from .rules import (
    BreakoutCheck,
    VolumeCheck,
    RiskCheck,
    check_breakout,
    check_anomaly,
    check_volume,
    check_risk,
)
from .detector import SignalDetector
from .validator import SignalValidator
from .session import BreakoutSession

__all__ = [
    "SessionClock",
    "LevelCalculator",
    "BreakoutCheck",
    "VolumeCheck",
    "RiskCheck",
    "check_breakout",
    "check_anomaly",
    "check_volume",
    "check_risk",
    "SignalDetector",
    "SignalValidator",
    "BreakoutSession",
]
