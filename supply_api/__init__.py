"""Cached, rate-limited supply aggregation API for Aptos stablecoins."""

__version__ = "0.1.0"
