from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from orb_bot.adapters.data_feed import BarFeed, JsonBarFeed
from orb_bot.core.config import Contracts, load_contracts, session_schedule, signal_rules
from orb_bot.core.events import Event, LevelsComputed, SignalEmitted
from orb_bot.engines.session import BreakoutSession

logger = logging.getLogger(__name__)


def replay_bars(
    feed: BarFeed,
    symbol: str,
    contracts: Optional[Contracts] = None,
    valid_only: bool = False,
) -> List[Event]:
    """
    Fold a feed through a BreakoutSession.

    Emits a LEVELS_COMPUTED event the first time full levels exist for a
    trading day, and a SIGNAL_EMITTED event for every signal (or only the
    valid ones when valid_only is set).
    """
    contracts = contracts or load_contracts()
    session = BreakoutSession(
        symbol,
        schedule=session_schedule(contracts),
        rules=signal_rules(contracts, symbol),
    )
    stream_id = f"{symbol}_ORB"
    events: List[Event] = []
    levels_day = None
    processed = 0

    for bar in feed.bars():
        signal = session.on_bar(bar)
        processed += 1

        if levels_day != session.trading_date:
            levels = session.levels(now=bar.timestamp)
            if levels is not None and session.clock.is_regular(bar.timestamp):
                events.append(Event.make(
                    stream_id, bar.timestamp.isoformat(), "LEVELS_COMPUTED",
                    LevelsComputed.from_levels(symbol, levels), contracts.config_hash,
                ))
                levels_day = session.trading_date

        if signal is None or (valid_only and not signal.is_valid):
            continue
        events.append(Event.make(
            stream_id, bar.timestamp.isoformat(), "SIGNAL_EMITTED",
            SignalEmitted.from_signal(signal), contracts.config_hash,
        ))

    logger.info(f"{symbol}: replayed {processed} bars, {len(events)} events")
    return events


def replay_json(
    bars_path: str,
    symbol: str,
    contracts_path: Optional[str] = None,
    valid_only: bool = False,
) -> Dict[str, Any]:
    contracts = load_contracts(contracts_path)
    events = replay_bars(JsonBarFeed(bars_path), symbol, contracts, valid_only=valid_only)
    return {
        "symbol": symbol,
        "config_hash": contracts.config_hash,
        "events": [e.to_dict() for e in events],
    }


def main():
    p = argparse.ArgumentParser("replay-runner")
    p.add_argument("--bars", required=True, help="Path to JSON list of bar dicts")
    p.add_argument("--symbol", required=True)
    p.add_argument("--contracts", default=None)
    p.add_argument("--valid-only", action="store_true")
    args = p.parse_args()
    result = replay_json(args.bars, args.symbol, contracts_path=args.contracts, valid_only=args.valid_only)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
