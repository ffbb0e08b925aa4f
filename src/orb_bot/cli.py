from __future__ import annotations
import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

from orb_bot.adapters.data_feed import JsonBarFeed, SyntheticBarFeed
from orb_bot.core.config import format_hhmm, load_contracts, session_schedule, signal_rules
from orb_bot.core.errors import InvalidBarError
from orb_bot.core.events import LevelsComputed
from orb_bot.engines.levels import LevelCalculator
from orb_bot.engines.session_clock import SessionClock
from orb_bot.tools.replay_runner import replay_json


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("orb-bot")
    p.add_argument("--contracts", default=None, help="Directory with session.yaml and signal_rules.yaml")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    # session phase at an instant
    s_phase = sub.add_parser("phase")
    s_phase.add_argument("--ts", default=None, help="ISO8601 instant (default: now)")

    # PM / ORB levels from a bar file
    s_levels = sub.add_parser("levels")
    s_levels.add_argument("--bars", required=True, help="Path to JSON list of bar dicts {ts,o,h,l,c,v}")
    s_levels.add_argument("--symbol", default="SPY")

    # signals over a bar file
    s_replay = sub.add_parser("replay")
    s_replay.add_argument("--bars", required=True)
    s_replay.add_argument("--symbol", required=True)
    s_replay.add_argument("--valid-only", action="store_true")

    # write a synthetic bar file
    s_syn = sub.add_parser("synthetic")
    s_syn.add_argument("--date", required=True, help="Trading date YYYY-MM-DD")
    s_syn.add_argument("--out", required=True)
    s_syn.add_argument("--seed", type=int, default=0)
    s_syn.add_argument("--interval", type=int, default=5, help="Bar size in minutes")
    s_syn.add_argument("--base-price", type=float, default=100.0)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    contracts = load_contracts(args.contracts)
    schedule = session_schedule(contracts)

    if args.cmd == "phase":
        ts = datetime.fromisoformat(args.ts) if args.ts else datetime.now(timezone.utc)
        clock = SessionClock(schedule)
        nxt = clock.time_until_next_event(ts)
        print(json.dumps({
            "ts": clock.to_exchange_time(ts).isoformat(),
            "phase": clock.classify(ts).value,
            "next_event": nxt.event,
            "minutes": nxt.minutes,
        }, indent=2))
        return 0

    if args.cmd == "levels":
        try:
            bars = list(JsonBarFeed(args.bars).bars())
            calc = LevelCalculator(SessionClock(schedule), signal_rules(contracts, args.symbol))
            now = bars[-1].timestamp if bars else datetime.now(timezone.utc)
            levels = calc.calculate_full_levels(bars, now)
        except (InvalidBarError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if levels is None:
            print(json.dumps({"symbol": args.symbol, "levels": None}, indent=2))
            return 0
        print(LevelsComputed.from_levels(args.symbol, levels).model_dump_json(indent=2))
        return 0

    if args.cmd == "replay":
        try:
            result = replay_json(args.bars, args.symbol, contracts_path=args.contracts, valid_only=args.valid_only)
        except (InvalidBarError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(json.dumps(result, indent=2))
        return 0

    if args.cmd == "synthetic":
        feed = SyntheticBarFeed(
            trading_date=date.fromisoformat(args.date),
            seed=args.seed,
            interval_minutes=args.interval,
            base_price=Decimal(str(args.base_price)).quantize(Decimal("0.01")),
            timezone=schedule.timezone,
            start=format_hhmm(schedule.pre_market_start),
            end=format_hhmm(schedule.market_close),
        )
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        rows = feed.to_dicts()
        out.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        print(json.dumps({"out": str(out), "bars": len(rows)}, indent=2))
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
