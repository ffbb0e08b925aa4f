"""
Session clock: maps an instant to the exchange's daily session phase.

Uses the exchange's civil time (America/New_York by default) via zoneinfo, so
DST transitions shift the UTC boundaries exactly as the exchange does.
Phases use [start, end) semantics (start inclusive, end exclusive):

    pre_market  04:00 <= t < 09:30
    settling    09:30 <= t < 09:45   (no-trade, ORB forming)
    regular     09:45 <= t < 16:00
    closed      otherwise
"""

from datetime import date, datetime
from typing import Optional

from ..core.config import SessionSchedule
from ..core.types import NextEvent, SessionPhase

MINUTES_PER_DAY = 24 * 60


class SessionClock:
    """
    Pure session arithmetic. Never reads the wall clock; every call takes
    the instant to classify.
    """

    def __init__(self, schedule: Optional[SessionSchedule] = None):
        self.schedule = schedule or SessionSchedule()
        self.tz = self.schedule.tz

    def to_exchange_time(self, ts: datetime) -> datetime:
        # Naive timestamps are taken as exchange-local
        if ts.tzinfo is None:
            return ts.replace(tzinfo=self.tz)
        return ts.astimezone(self.tz)

    def minute_of_day(self, ts: datetime) -> int:
        local = self.to_exchange_time(ts)
        return local.hour * 60 + local.minute

    def trading_date(self, ts: datetime) -> date:
        return self.to_exchange_time(ts).date()

    def classify(self, ts: datetime) -> SessionPhase:
        return self.phase_at_minute(self.minute_of_day(ts))

    def phase_at_minute(self, minute: int) -> SessionPhase:
        s = self.schedule
        if s.pre_market_start <= minute < s.market_open:
            return SessionPhase.PRE_MARKET
        if s.market_open <= minute < s.orb_end:
            return SessionPhase.SETTLING
        if s.orb_end <= minute < s.market_close:
            return SessionPhase.REGULAR
        return SessionPhase.CLOSED

    def in_pre_market(self, ts: datetime) -> bool:
        return self.classify(ts) == SessionPhase.PRE_MARKET

    def in_orb_window(self, ts: datetime) -> bool:
        return self.classify(ts) == SessionPhase.SETTLING

    def is_regular(self, ts: datetime) -> bool:
        return self.classify(ts) == SessionPhase.REGULAR

    def time_until_next_event(self, ts: datetime) -> NextEvent:
        """
        Name of the next phase boundary and whole minutes until it.

        Computed from the phase and minute-of-day only; seconds are ignored.
        """
        s = self.schedule
        labels = s.event_labels
        minute = self.minute_of_day(ts)
        phase = self.phase_at_minute(minute)

        if phase == SessionPhase.PRE_MARKET:
            return NextEvent(labels["market_open"], s.market_open - minute)
        if phase == SessionPhase.SETTLING:
            return NextEvent(labels["orb_formation"], s.orb_end - minute)
        if phase == SessionPhase.REGULAR:
            return NextEvent(labels["market_close"], s.market_close - minute)
        if minute < s.pre_market_start:
            return NextEvent(labels["pre_market_open"], s.pre_market_start - minute)
        # After the close: wrap to tomorrow's pre-market
        return NextEvent(labels["next_pre_market"], MINUTES_PER_DAY - minute + s.pre_market_start)
