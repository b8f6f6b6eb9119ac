"""
Watchlist API Routes

Endpoints:
- GET /api/watchlist - Rendered watchlist page (sign-in page when signed out)
- GET /api/watchlist/symbols - Symbols on the current user's watchlist
- GET /api/watchlist/{symbol}/status - Whether a symbol is on the watchlist
- POST /api/watchlist - Add a symbol
- DELETE /api/watchlist/{symbol} - Remove a symbol

Mutations return a WatchlistResult (HTTP 200) for expected failures such
as duplicates; only a missing session is an HTTP error (401).
"""

import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends

from utils.auth import get_optional_session, get_current_email
from watchlist.config import MarketDataConfig
from watchlist.identity import IdentityResolver
from watchlist.market_data import MarketDataClient
from watchlist.models import (
    WatchlistAddRequest,
    WatchlistPage,
    WatchlistResult,
    WatchlistStatusResponse,
    WatchlistSymbolsResponse,
)
from watchlist.renderer import WatchlistPageRenderer
from watchlist.store import WatchlistStore
from utils.symbol_normalization import normalize_symbol

logger = logging.getLogger(__name__)

watchlist_router = APIRouter(prefix="/watchlist", tags=["Watchlist"])


# ==================== SHARED INSTANCES ====================

_store: Optional[WatchlistStore] = None
_market_data: Optional[MarketDataClient] = None


def get_watchlist_store() -> WatchlistStore:
    """Get or create the store (lazy import to avoid env validation at import)"""
    global _store
    if _store is None:
        from database import db
        _store = WatchlistStore(db, IdentityResolver(db))
    return _store


def get_market_data_client() -> MarketDataClient:
    """Get or create the Finnhub client"""
    global _market_data
    if _market_data is None:
        config = MarketDataConfig.from_env()
        if not config.api_key:
            logger.warning("FINNHUB_API_KEY not set - watchlist enrichment disabled")
        _market_data = MarketDataClient(config)
    return _market_data


def get_page_renderer(
    store: WatchlistStore = Depends(get_watchlist_store),
    market_data: MarketDataClient = Depends(get_market_data_client)
) -> WatchlistPageRenderer:
    return WatchlistPageRenderer(store, market_data)


async def shutdown_watchlist_services() -> None:
    """Close the shared Finnhub HTTP client"""
    global _market_data, _store
    if _market_data is not None:
        await _market_data.aclose()
        _market_data = None
    _store = None


# ==================== PAGE ====================

@watchlist_router.get("", response_model=WatchlistPage)
async def get_watchlist_page(
    session: Optional[Dict[str, Any]] = Depends(get_optional_session),
    renderer: WatchlistPageRenderer = Depends(get_page_renderer)
):
    """
    Get the current user's watchlist enriched with live quotes and profiles.

    Signed-out users get the sign-in page model rather than a 401.
    """
    email = session["user"]["email"] if session else None
    return await renderer.render(email)


# ==================== QUERIES ====================

@watchlist_router.get("/symbols", response_model=WatchlistSymbolsResponse)
async def get_watchlist_symbols(
    email: str = Depends(get_current_email),
    store: WatchlistStore = Depends(get_watchlist_store)
):
    symbols = await store.list_symbols(email)
    return WatchlistSymbolsResponse(symbols=symbols, count=len(symbols))


@watchlist_router.get("/{symbol}/status", response_model=WatchlistStatusResponse)
async def get_watchlist_status(
    symbol: str,
    email: str = Depends(get_current_email),
    store: WatchlistStore = Depends(get_watchlist_store)
):
    in_watchlist = await store.contains(email, symbol)
    return WatchlistStatusResponse(symbol=normalize_symbol(symbol), in_watchlist=in_watchlist)


# ==================== MUTATIONS ====================

@watchlist_router.post("", response_model=WatchlistResult)
async def add_to_watchlist(
    request: WatchlistAddRequest,
    email: str = Depends(get_current_email),
    store: WatchlistStore = Depends(get_watchlist_store)
):
    """Add a symbol to the current user's watchlist"""
    return await store.add(email, request.symbol, request.company)


@watchlist_router.delete("/{symbol}", response_model=WatchlistResult)
async def remove_from_watchlist(
    symbol: str,
    email: str = Depends(get_current_email),
    store: WatchlistStore = Depends(get_watchlist_store)
):
    """Remove a symbol from the current user's watchlist"""
    return await store.remove(email, symbol)
