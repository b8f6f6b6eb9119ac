"""
Watchlist Data Models

Pydantic models for watchlist operations.
WatchlistEntry mirrors the documents stored in the watchlist collection;
QuoteData and ProfileData mirror Finnhub responses and are never persisted.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime


# ==================== STORED MODELS ====================

class WatchlistEntry(BaseModel):
    """A (user, symbol) pairing as stored in MongoDB"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    symbol: str
    company: str
    added_at: datetime = Field(..., alias="addedAt")


class WatchlistResult(BaseModel):
    """Outcome of a watchlist mutation"""
    success: bool
    message: str
    error_code: Optional[str] = None


# ==================== REQUEST / RESPONSE MODELS ====================

class WatchlistAddRequest(BaseModel):
    """Request to add a symbol to the current user's watchlist"""
    symbol: str = Field(..., description="Ticker symbol, case-insensitive")
    company: str = Field(..., description="Company display name")


class WatchlistSymbolsResponse(BaseModel):
    symbols: List[str]
    count: int


class WatchlistStatusResponse(BaseModel):
    symbol: str
    in_watchlist: bool


# ==================== FINNHUB MODELS ====================

class QuoteData(BaseModel):
    """Finnhub /quote payload. Every field is optional."""
    model_config = ConfigDict(extra="ignore")

    c: Optional[float] = None   # current price
    d: Optional[float] = None   # change
    dp: Optional[float] = None  # percent change
    h: Optional[float] = None
    l: Optional[float] = None
    o: Optional[float] = None
    pc: Optional[float] = None  # previous close
    t: Optional[int] = None


class ProfileData(BaseModel):
    """Finnhub /stock/profile2 payload. Every field is optional."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    ticker: Optional[str] = None
    exchange: Optional[str] = None
    currency: Optional[str] = None
    country: Optional[str] = None
    finnhubIndustry: Optional[str] = None
    ipo: Optional[str] = None
    logo: Optional[str] = None
    weburl: Optional[str] = None
    marketCapitalization: Optional[float] = None  # millions
    shareOutstanding: Optional[float] = None


# ==================== PAGE MODELS ====================

class WatchlistCard(BaseModel):
    """One rendered watchlist entry with best-effort enrichment"""
    symbol: str
    company: str
    display_name: str
    added_at: datetime
    current_price: Optional[float] = None
    change_percent: Optional[float] = None
    market_cap: Optional[float] = None
    is_positive: bool = True
    price_available: bool = False
    price_display: str
    change_display: Optional[str] = None
    market_cap_display: Optional[str] = None
    added_display: str
    detail_url: str


class WatchlistPage(BaseModel):
    """Composed watchlist page"""
    state: Literal["sign_in", "empty", "list"]
    title: str
    message: str
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    user_email: Optional[str] = None
    cards: List[WatchlistCard] = Field(default_factory=list)
