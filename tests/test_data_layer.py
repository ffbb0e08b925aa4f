"""
Tests for data layer: bar invariants and series ordering.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from orb_bot.core.errors import InvalidBarError
from orb_bot.core.types import MarketBar
from orb_bot.engines.data_layer import bar_checks, validate_bar, validate_series

ET = ZoneInfo("America/New_York")


def make_bar(minute=0, open="100.00", high="101.00", low="99.50", close="100.50", volume=1000, ts=None):
    return MarketBar(
        timestamp=ts or datetime(2025, 1, 15, 10, minute, tzinfo=ET),
        open=Decimal(open),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        volume=volume,
    )


def test_bar_validation_pass():
    """Test valid bar passes all checks."""
    bar = make_bar()
    assert bar_checks(bar) == []
    assert validate_bar(bar) is bar


def test_bar_validation_fail_ohlc():
    """Test bar with high below low fails."""
    bar = make_bar(high="99.00", low="99.50", open="99.20", close="99.30")

    with pytest.raises(InvalidBarError) as exc:
        validate_bar(bar)
    assert "ohlc_low_high" in exc.value.checks
    assert exc.value.bar is bar


def test_bar_validation_fail_open_outside_range():
    """Test bar with open above high fails."""
    bar = make_bar(open="101.50")
    assert bar_checks(bar) == ["ohlc_open_range"]


def test_bar_validation_fail_volume():
    """Test bar with negative volume fails."""
    bar = make_bar(volume=-100)

    with pytest.raises(InvalidBarError) as exc:
        validate_bar(bar)
    assert exc.value.checks == ["volume_negative"]


def test_zero_volume_allowed():
    assert bar_checks(make_bar(volume=0)) == []


def test_invalid_bar_error_is_value_error():
    with pytest.raises(ValueError):
        validate_bar(make_bar(volume=-1))


def test_series_in_order_passes():
    validate_series([make_bar(0), make_bar(5), make_bar(10)])


def test_series_duplicate_timestamp_fails():
    with pytest.raises(InvalidBarError) as exc:
        validate_series([make_bar(0), make_bar(5), make_bar(5)])
    assert exc.value.checks == ["timestamp_order"]


def test_series_must_follow_previous_bar():
    with pytest.raises(InvalidBarError):
        validate_series([make_bar(0)], after=make_bar(5))


def test_series_mixes_naive_and_aware_timestamps():
    naive = make_bar(ts=datetime(2025, 1, 15, 10, 0))
    utc = make_bar(ts=datetime(2025, 1, 15, 15, 5, tzinfo=timezone.utc))  # 10:05 ET
    validate_series([naive, utc], tz=ET)


def test_bar_coerces_float_prices_to_decimal():
    bar = MarketBar(
        timestamp=datetime(2025, 1, 15, 10, 0, tzinfo=ET),
        open=100.6, high=101.2, low=100.55, close=101.1, volume=2000, vwap=100.9,
    )
    assert bar.close == Decimal("101.1")
    assert isinstance(bar.high, Decimal)
    assert bar.vwap == Decimal("100.9")
    assert bar.close - Decimal("100.50") == Decimal("0.60")


@pytest.mark.parametrize("volume", [10.5, "7.25", True])
def test_bar_rejects_non_integral_volume(volume):
    with pytest.raises(ValueError):
        make_bar(volume=volume)


@pytest.mark.parametrize("price", ["abc", float("nan"), None])
def test_bar_rejects_non_numeric_price(price):
    with pytest.raises(ValueError):
        MarketBar(
            timestamp=datetime(2025, 1, 15, 10, 0, tzinfo=ET),
            open=price, high=101, low=99, close=100, volume=1,
        )
