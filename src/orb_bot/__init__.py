"""Intraday opening-range breakout signal detection."""

__version__ = "0.1.0"
