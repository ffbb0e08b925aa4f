"""
Bar sources for the ORB bot.

Provides:
- BarFeed protocol: anything that yields MarketBars in timestamp order
- JsonBarFeed: replays a JSON list of bar dicts (ts, o, h, l, c, v)
- SyntheticBarFeed: seeded random-walk OHLCV bars for one trading day

The detection core never imports this module; feeds are handed to the
replay tooling by the caller. Live sources can be added behind the same
protocol.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Protocol
from zoneinfo import ZoneInfo

from ..core.types import MarketBar

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class BarFeed(Protocol):
    def bars(self) -> Iterator[MarketBar]:
        ...


class JsonBarFeed:
    """
    Replays bars from a JSON file holding a list of bar dicts.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> List[Dict[str, Any]]:
        with self.path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, list):
            raise ValueError(f"{self.path}: expected a JSON list of bars")
        return payload

    def bars(self) -> Iterator[MarketBar]:
        rows = self.load()
        logger.info(f"Replaying {len(rows)} bars from {self.path}")
        for idx, row in enumerate(rows):
            try:
                yield MarketBar.from_dict(row)
            except (KeyError, ValueError, TypeError) as e:
                raise ValueError(f"{self.path}: bad bar at index {idx}: {e}") from e


@dataclass
class SyntheticBarFeed:
    """
    Deterministic mock OHLCV generator.

    Same seed and trading date -> same bars. Covers pre-market through the
    close in fixed-size bars stamped in exchange-local time.
    """
    trading_date: date
    seed: int = 0
    interval_minutes: int = 5
    base_price: Decimal = Decimal("100.00")
    base_volume: int = 10_000
    volatility: Decimal = Decimal("0.15")
    timezone: str = "America/New_York"
    start: str = "04:00"
    end: str = "16:00"

    def __post_init__(self):
        if self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

    def _bounds(self) -> tuple:
        tz = ZoneInfo(self.timezone)
        sh, sm = (int(p) for p in self.start.split(":"))
        eh, em = (int(p) for p in self.end.split(":"))
        d = self.trading_date
        return (
            datetime(d.year, d.month, d.day, sh, sm, tzinfo=tz),
            datetime(d.year, d.month, d.day, eh, em, tzinfo=tz),
        )

    def bars(self) -> Iterator[MarketBar]:
        rng = random.Random(self.seed)
        ts, end = self._bounds()
        step = timedelta(minutes=self.interval_minutes)
        price = self.base_price

        while ts < end:
            open_ = price
            drift = Decimal(str(rng.gauss(0.0, 1.0))) * self.volatility
            close = max(CENT, (open_ + drift).quantize(CENT))
            wick_up = Decimal(str(abs(rng.gauss(0.0, 0.5)))) * self.volatility
            wick_down = Decimal(str(abs(rng.gauss(0.0, 0.5)))) * self.volatility
            high = (max(open_, close) + wick_up).quantize(CENT)
            low = max(CENT, (min(open_, close) - wick_down).quantize(CENT))
            volume = max(0, int(rng.gauss(self.base_volume, self.base_volume * 0.35)))

            yield MarketBar(
                timestamp=ts,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volume,
            )
            price = close
            ts = ts + step

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [bar.to_payload() for bar in self.bars()]
