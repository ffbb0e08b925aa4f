"""
Exceptions raised by the ORB bot core.

Only malformed input raises. A bar that fails a trading rule is not an
error; that outcome is reported through Signal.rejection_reasons.
"""

from __future__ import annotations

from typing import Any, List, Optional


class InvalidBarError(ValueError):
    """
    A bar violates the OHLCV invariants or arrives out of timestamp order.

    Attributes:
        checks: failed check ids (e.g. "ohlc_low_high", "timestamp_order")
        bar: the offending bar, when available
    """

    def __init__(self, checks: List[str], bar: Optional[Any] = None, message: Optional[str] = None):
        self.checks = list(checks)
        self.bar = bar
        if message is None:
            message = f"Invalid bar ({', '.join(self.checks)})"
            ts = getattr(bar, "timestamp", None)
            if ts is not None:
                message += f" at {ts.isoformat()}"
        super().__init__(message)
