"""
Watchlist Module
Personal stock watchlists enriched with live Finnhub market data

This module provides:
- Email to user id resolution against the auth provider's user records
- Watchlist CRUD (list, existence check, add, remove)
- Finnhub quote/profile client with TTL caching
- Watchlist page composition with parallel enrichment
- Optimistic toggle control with rollback

Collections used:
- user: Auth provider user records (read-only)
- watchlist: One document per (userId, symbol)
"""

__version__ = "1.0.0"
