"""
Tests for BreakoutSession: incremental fold of the detector over one
instrument's bar stream, day rollover and input rejection.
"""

import logging

import pytest
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from orb_bot.core.errors import InvalidBarError
from orb_bot.core.types import MarketBar, SignalType
from orb_bot.engines.session import BreakoutSession

ET = ZoneInfo("America/New_York")
D = Decimal


def bar(day, hour, minute, o, h, l, c, v):
    return MarketBar(
        timestamp=datetime(2025, 1, day, hour, minute, tzinfo=ET),
        open=D(o), high=D(h), low=D(l), close=D(c), volume=v,
    )


def trading_day(day=15):
    """PM 99-101, ORB 100.00-100.50, then an inside bar and a long breakout."""
    return [
        bar(day, 4, 0, "100.00", "100.40", "99.60", "100.20", 300),
        bar(day, 7, 0, "100.20", "101.00", "99.00", "100.10", 400),
        bar(day, 9, 30, "100.10", "100.30", "100.00", "100.25", 1000),
        bar(day, 9, 35, "100.25", "100.50", "100.15", "100.40", 1000),
        bar(day, 9, 40, "100.40", "100.45", "100.10", "100.30", 1000),
        bar(day, 9, 45, "100.30", "100.45", "100.20", "100.35", 1100),
        bar(day, 9, 50, "100.35", "100.75", "100.30", "100.70", 2400),
    ]


@pytest.fixture
def session():
    return BreakoutSession("SPY")


def test_fold_emits_breakout(session):
    signals = session.process(trading_day())

    assert len(signals) == 1
    signal = signals[0]
    assert signal.type == SignalType.BREAKOUT_LONG
    assert signal.is_valid is True
    assert signal.orb_line == D("100.50")
    # avg of 09:35, 09:40, 09:45
    assert signal.avg_volume3 == D(3100) / 3


def test_no_signal_before_regular_session(session):
    for b in trading_day()[:5]:
        assert session.on_bar(b) is None


def test_levels_on_demand(session):
    session.process(trading_day())
    now = datetime(2025, 1, 15, 9, 51, tzinfo=ET)
    levels = session.levels(now)

    assert levels.pm_high == D("101.00")
    assert levels.pm_low == D("99.00")
    assert levels.orb_high == D("100.50")
    assert levels.orb_low == D("100.00")
    assert levels.calculated_at == now


def test_no_opening_range_means_no_signal(session):
    bars = [b for b in trading_day() if not (b.timestamp.hour == 9 and b.timestamp.minute == 35)]
    assert session.process(bars) == []


def test_new_day_resets_history(session):
    session.process(trading_day(15))
    assert session.trading_date.day == 15

    first = trading_day(16)[0]
    session.on_bar(first)
    assert session.trading_date.day == 16
    assert session.bars == [first]
    assert session.levels(first.timestamp) is None


def test_second_day_uses_its_own_range(session):
    session.process(trading_day(15))
    day2 = trading_day(16)
    # Shift day two's range down by a dollar
    shifted = [
        MarketBar(b.timestamp, b.open - 1, b.high - 1, b.low - 1, b.close - 1, b.volume)
        for b in day2
    ]
    signals = session.process(shifted)

    assert len(signals) == 1
    assert signals[0].orb_line == D("99.50")


def test_out_of_order_bar_rejected_state_unchanged(session):
    bars = trading_day()
    session.process(bars[:4])

    with pytest.raises(InvalidBarError):
        session.on_bar(bars[1])
    assert session.bars == bars[:4]

    # The stream can continue with the next in-order bar
    session.process(bars[4:])
    assert len(session.bars) == len(bars)


def test_invalid_bar_rejected(session):
    bad = bar(15, 9, 50, "100.40", "100.30", "100.35", "100.70", 10)
    with pytest.raises(InvalidBarError):
        session.on_bar(bad)
    assert session.bars == []


def test_reset(session):
    session.process(trading_day())
    session.reset()
    assert session.bars == []
    assert session.trading_date is None


def test_rejected_signal_logged(session, caplog):
    bars = trading_day()
    last = bars[-1]
    bars[-1] = MarketBar(last.timestamp, last.open, D("101.80"), last.low, D("101.70"), last.volume)

    with caplog.at_level(logging.INFO, logger="orb_bot.engines.session"):
        signals = session.process(bars)

    assert signals[0].is_valid is False
    assert "Stop distance" in caplog.text
