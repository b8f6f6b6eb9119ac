"""
Symbol Normalization Utilities
==============================
Ensures consistent symbol formatting between stored watchlist
entries, lookups and Finnhub requests.

Symbols are stored and queried uppercased. Class-share punctuation
(BRK.B) is passed through untouched, matching Finnhub's format.
"""

from typing import Optional


def normalize_symbol(symbol: Optional[str]) -> str:
    """
    Normalize a symbol for storage and lookup.

    Args:
        symbol: Raw symbol string

    Returns:
        Uppercased, stripped symbol ("" for None)
    """
    if not symbol:
        return ""
    return symbol.strip().upper()

