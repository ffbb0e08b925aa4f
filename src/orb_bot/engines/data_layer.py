"""
Bar validation for the ORB bot.

This module:
1. Checks single-bar OHLCV invariants
2. Checks that a series is strictly ordered by timestamp
3. Fails closed: any violation raises InvalidBarError before levels or
   signals are computed from the data
"""

from datetime import datetime
from typing import List, Optional, Sequence

from ..core.errors import InvalidBarError
from ..core.types import MarketBar


def bar_checks(bar: MarketBar) -> List[str]:
    """Return the ids of every invariant the bar violates (empty when valid)."""
    rejected = []

    # OHLC sanity checks
    if not (bar.low <= bar.high):
        rejected.append("ohlc_low_high")
    if not (bar.low <= bar.open <= bar.high):
        rejected.append("ohlc_open_range")
    if not (bar.low <= bar.close <= bar.high):
        rejected.append("ohlc_close_range")

    # Volume sanity
    if bar.volume < 0:
        rejected.append("volume_negative")

    return rejected


def validate_bar(bar: MarketBar) -> MarketBar:
    rejected = bar_checks(bar)
    if rejected:
        raise InvalidBarError(rejected, bar)
    return bar


def _instant(ts: datetime, tz) -> datetime:
    # Naive and aware timestamps cannot be compared directly
    return ts.replace(tzinfo=tz) if ts.tzinfo is None else ts


def validate_series(bars: Sequence[MarketBar], tz=None, after: Optional[MarketBar] = None) -> None:
    """
    Validate every bar and require strictly increasing timestamps.

    Args:
        bars: bars in arrival order
        tz: timezone assumed for naive timestamps
        after: last bar already accepted; the first bar must follow it
    """
    prev = after
    for bar in bars:
        validate_bar(bar)
        if prev is not None and _instant(bar.timestamp, tz) <= _instant(prev.timestamp, tz):
            raise InvalidBarError(
                ["timestamp_order"],
                bar,
                f"Bar at {bar.timestamp.isoformat()} does not follow {prev.timestamp.isoformat()}",
            )
        prev = bar
