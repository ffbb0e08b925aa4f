"""
Reference levels derived from the bars seen so far.

Pre-market range and opening range both use wick extremes (high/low).
Breakout confirmation in the detector uses closes; keep the two apart.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.config import SignalRules
from ..core.types import MarketBar, OpeningRange, ORBLevels, PreMarketRange
from .data_layer import validate_series
from .session_clock import SessionClock


class LevelCalculator:
    """
    Computes PM high/low and ORB high/low/midline for one trading day.

    Idempotent given the same bar set; nothing is cached between calls.
    """

    def __init__(self, clock: Optional[SessionClock] = None, rules: Optional[SignalRules] = None):
        self.clock = clock or SessionClock()
        self.rules = rules or SignalRules()

    def calculate_pm_high_low(self, bars: Sequence[MarketBar]) -> Optional[PreMarketRange]:
        """High/low over bars in [pre_market_start, market_open). None if there are none."""
        validate_series(bars, self.clock.tz)
        pm_bars = [b for b in bars if self.clock.in_pre_market(b.timestamp)]
        if not pm_bars:
            return None
        return PreMarketRange(
            pm_high=max(b.high for b in pm_bars),
            pm_low=min(b.low for b in pm_bars),
        )

    def calculate_orb(self, bars: Sequence[MarketBar]) -> Optional[OpeningRange]:
        """
        Opening range over bars in [market_open, orb_end).

        Needs at least min_orb_bars bars in the window (three 5-minute
        candles by default), otherwise None.
        """
        validate_series(bars, self.clock.tz)
        orb_bars = [b for b in bars if self.clock.in_orb_window(b.timestamp)]
        if len(orb_bars) < self.rules.min_orb_bars:
            return None
        orb_high = max(b.high for b in orb_bars)
        orb_low = min(b.low for b in orb_bars)
        return OpeningRange(
            orb_high=orb_high,
            orb_low=orb_low,
            orb_midline=orb_low + (orb_high - orb_low) / Decimal(2),
        )

    def calculate_full_levels(self, bars: Sequence[MarketBar], now: datetime) -> Optional[ORBLevels]:
        """
        Both ranges together, stamped with the caller-supplied `now`.

        None unless both the pre-market and the opening range are available.
        """
        pm = self.calculate_pm_high_low(bars)
        if pm is None:
            return None
        orb = self.calculate_orb(bars)
        if orb is None:
            return None
        return ORBLevels(
            pm_high=pm.pm_high,
            pm_low=pm.pm_low,
            orb_high=orb.orb_high,
            orb_low=orb.orb_low,
            orb_midline=orb.orb_midline,
            calculated_at=now,
        )
