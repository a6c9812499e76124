"""Shooting Pulse - NYPD shooting incident aggregation and forecasting."""

__version__ = "0.1.0"
