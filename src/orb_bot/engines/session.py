"""
Per-instrument session state: a synchronous fold of SignalDetector.detect
over one symbol's bar stream.

Bars accumulate for the current exchange-local trading day and reset when the
date changes. Each instrument gets its own BreakoutSession; nothing is shared.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from ..core.config import SessionSchedule, SignalRules
from ..core.types import MarketBar, OpeningRange, ORBLevels, SessionPhase, Signal
from .data_layer import validate_series
from .detector import SignalDetector
from .levels import LevelCalculator
from .session_clock import SessionClock

logger = logging.getLogger(__name__)


class BreakoutSession:

    def __init__(
        self,
        symbol: str,
        schedule: Optional[SessionSchedule] = None,
        rules: Optional[SignalRules] = None,
    ):
        self.symbol = symbol
        self.clock = SessionClock(schedule)
        self.rules = rules or SignalRules()
        self.levels_calc = LevelCalculator(self.clock, self.rules)
        self.detector = SignalDetector(self.clock, self.rules)

        self._bars: List[MarketBar] = []
        self._trading_date: Optional[date] = None
        self._orb: Optional[OpeningRange] = None
        self._last_bar: Optional[MarketBar] = None

    @property
    def bars(self) -> List[MarketBar]:
        """Bars accumulated for the current trading day."""
        return list(self._bars)

    @property
    def trading_date(self) -> Optional[date]:
        return self._trading_date

    def reset(self) -> None:
        self._bars = []
        self._trading_date = None
        self._orb = None
        self._last_bar = None

    def levels(self, now: datetime) -> Optional[ORBLevels]:
        """Full levels from today's bars, stamped with the caller's `now`."""
        return self.levels_calc.calculate_full_levels(self._bars, now)

    def on_bar(self, bar: MarketBar) -> Optional[Signal]:
        """
        Accept the next bar and evaluate it.

        Raises InvalidBarError for a malformed bar or one that does not
        strictly follow the previous bar; the session state is unchanged then.
        """
        validate_series([bar], self.clock.tz, after=self._last_bar)
        self._last_bar = bar

        day = self.clock.trading_date(bar.timestamp)
        if day != self._trading_date:
            if self._trading_date is not None:
                logger.info(f"{self.symbol}: new trading day {day}, dropping {len(self._bars)} bars")
            self._bars = []
            self._orb = None
            self._trading_date = day

        preceding = list(self._bars)
        self._bars.append(bar)

        if self.clock.classify(bar.timestamp) != SessionPhase.REGULAR:
            return None

        orb = self._opening_range(preceding)
        if orb is None:
            logger.debug(f"{self.symbol}: no opening range yet at {bar.timestamp.isoformat()}")
            return None

        signal = self.detector.detect(bar, preceding, orb.orb_high, orb.orb_low, self.symbol)
        if signal is not None:
            if signal.is_valid:
                logger.info(
                    f"{self.symbol}: {signal.type.value} @ {bar.close} "
                    f"(ratio={signal.volume_ratio:.2f}, distance={signal.distance_to_stop})"
                )
            else:
                logger.info(
                    f"{self.symbol}: rejected {signal.type.value} @ {bar.close}: "
                    f"{'; '.join(signal.rejection_reasons) or signal.anomaly_reason}"
                )
        return signal

    def process(self, bars: Iterable[MarketBar]) -> List[Signal]:
        signals = []
        for bar in bars:
            signal = self.on_bar(bar)
            if signal is not None:
                signals.append(signal)
        return signals

    def _opening_range(self, preceding: List[MarketBar]) -> Optional[OpeningRange]:
        # Bars arrive in order, so once the regular session starts the ORB
        # window is complete and the range can be cached for the day
        if self._orb is None:
            self._orb = self.levels_calc.calculate_orb(preceding)
        return self._orb
