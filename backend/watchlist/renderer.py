"""
Watchlist Page Renderer

Composes the watchlist page for the current user:
1. No session email -> sign-in page (no store or market data calls)
2. No entries -> empty-state page
3. Otherwise quote + profile for EVERY entry fetched concurrently,
   one card per entry in store order

Enrichment is best-effort: a card missing its quote reads
"Price data unavailable" and never hides the card or fails the page.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .config import MESSAGES, SIGN_IN_URL, EXPLORE_URL, STOCK_DETAIL_URL
from .market_data import MarketDataClient
from .models import WatchlistCard, WatchlistEntry, WatchlistPage, QuoteData, ProfileData
from .store import WatchlistStore

logger = logging.getLogger(__name__)


# ==================== FORMATTING ====================

def format_price(price: float) -> str:
    return f"${price:.2f}"


def format_change(change_percent: float) -> str:
    sign = "+" if change_percent >= 0 else ""
    return f"{sign}{change_percent:.2f}%"


def format_market_cap(market_cap_millions: float) -> str:
    """Finnhub reports market cap in millions; display in billions."""
    return f"${market_cap_millions / 1000:.2f}B"


def format_added(added_at: datetime) -> str:
    return added_at.strftime("%b %d, %Y")


def build_card(entry: WatchlistEntry, quote: QuoteData, profile: ProfileData) -> WatchlistCard:
    """Merge a stored entry with whatever enrichment came back."""
    current_price = quote.c
    change_percent = quote.dp
    market_cap = profile.marketCapitalization
    price_available = current_price is not None

    return WatchlistCard(
        symbol=entry.symbol,
        company=entry.company,
        display_name=profile.name or entry.company,
        added_at=entry.added_at,
        current_price=current_price,
        change_percent=change_percent,
        market_cap=market_cap,
        is_positive=(change_percent or 0) >= 0,
        price_available=price_available,
        price_display=format_price(current_price) if price_available else MESSAGES["PRICE_UNAVAILABLE"],
        change_display=format_change(change_percent) if price_available and change_percent is not None else None,
        market_cap_display=format_market_cap(market_cap) if market_cap is not None else None,
        added_display=format_added(entry.added_at),
        detail_url=STOCK_DETAIL_URL.format(symbol=entry.symbol),
    )


class WatchlistPageRenderer:
    """Builds the watchlist page model from the store and Finnhub."""

    def __init__(self, store: WatchlistStore, market_data: MarketDataClient):
        self.store = store
        self.market_data = market_data

    async def render(self, email: Optional[str]) -> WatchlistPage:
        if not email:
            return WatchlistPage(
                state="sign_in",
                title="Watchlist",
                message="Please sign in to view your watchlist",
                action_url=SIGN_IN_URL,
                action_label="Sign In",
            )

        entries = await self.store.list_items(email)
        if not entries:
            return WatchlistPage(
                state="empty",
                title="Your Watchlist is Empty",
                message=(
                    "Start building your watchlist by searching for stocks and adding "
                    "them to keep track of your favorite companies."
                ),
                action_url=EXPLORE_URL,
                action_label="Explore Stocks",
                user_email=email,
            )

        cards = await asyncio.gather(*(self._enrich(entry) for entry in entries))
        logger.debug(f"Rendered watchlist for {email}: {len(cards)} cards")

        return WatchlistPage(
            state="list",
            title="My Watchlist",
            message="Track your favorite stocks and monitor their performance",
            user_email=email,
            cards=list(cards),
        )

    async def _enrich(self, entry: WatchlistEntry) -> WatchlistCard:
        quote, profile = await asyncio.gather(
            self.market_data.get_quote(entry.symbol),
            self.market_data.get_profile(entry.symbol),
            return_exceptions=True
        )
        if isinstance(quote, Exception):
            logger.warning(f"Quote enrichment failed for {entry.symbol}: {quote}")
            quote = QuoteData()
        if isinstance(profile, Exception):
            logger.warning(f"Profile enrichment failed for {entry.symbol}: {profile}")
            profile = ProfileData()
        return build_card(entry, quote, profile)
