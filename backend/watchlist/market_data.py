"""
Finnhub Market Data Client
==========================

Best-effort enrichment for watchlist cards.

RULES:
1. get_quote / get_profile NEVER raise - any failure maps to an empty record
2. No API token configured -> empty record, no network call
3. Successful responses are cached per (endpoint, symbol):
   - quotes: 60 seconds
   - profiles: 3600 seconds
   Failures are never cached.
"""

import logging
import time
from typing import Optional, Dict, Any, Tuple

import httpx
from pydantic import ValidationError

from utils.symbol_normalization import normalize_symbol

from .config import MarketDataConfig
from .errors import UpstreamFetchError
from .models import QuoteData, ProfileData

logger = logging.getLogger(__name__)

QUOTE_PATH = "/quote"
PROFILE_PATH = "/stock/profile2"


class MarketDataClient:
    """Async Finnhub client with an in-process TTL cache."""

    def __init__(
        self,
        config: MarketDataConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        clock=time.monotonic
    ):
        self.config = config
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds)
        )
        self._clock = clock
        self._cache: Dict[Tuple[str, str], Tuple[Dict[str, Any], float]] = {}

    # ==================== CACHE ====================

    def _get_cached(self, key: Tuple[str, str]) -> Optional[Dict[str, Any]]:
        cached = self._cache.get(key)
        if not cached:
            return None
        data, expires_at = cached
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return data

    def _set_cached(self, key: Tuple[str, str], data: Dict[str, Any], ttl_seconds: int) -> None:
        if ttl_seconds > 0:
            self._cache[key] = (data, self._clock() + ttl_seconds)

    def clear_cache(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        return count

    # ==================== HTTP ====================

    async def fetch_json(self, path: str, symbol: str, ttl_seconds: int) -> Dict[str, Any]:
        """
        GET {base_url}{path}?symbol=&token= and return the JSON object.

        Raises:
            UpstreamFetchError: on transport errors, non-2xx status, or a
                body that is not a JSON object.
        """
        key = (path, symbol)
        cached = self._get_cached(key)
        if cached is not None:
            return cached

        url = f"{self.config.base_url}{path}"
        try:
            response = await self._client.get(url, params={"symbol": symbol, "token": self.config.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(f"Finnhub {path} returned {e.response.status_code}", symbol=symbol)
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamFetchError(f"Finnhub {path} request failed: {e}", symbol=symbol)

        if not isinstance(data, dict):
            raise UpstreamFetchError(f"Finnhub {path} returned a non-object body", symbol=symbol)

        self._set_cached(key, data, ttl_seconds)
        return data

    async def _fetch_or_empty(self, path: str, symbol: Optional[str], ttl_seconds: int) -> Dict[str, Any]:
        symbol = normalize_symbol(symbol)
        if not symbol or not self.config.api_key:
            return {}
        try:
            return await self.fetch_json(path, symbol, ttl_seconds)
        except UpstreamFetchError as e:
            logger.warning(f"Error fetching {path} for {symbol}: {e.message}")
            return {}

    # ==================== PUBLIC API ====================

    async def get_quote(self, symbol: Optional[str]) -> QuoteData:
        data = await self._fetch_or_empty(QUOTE_PATH, symbol, self.config.quote_ttl_seconds)
        try:
            return QuoteData.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Malformed quote for {symbol}: {e}")
            return QuoteData()

    async def get_profile(self, symbol: Optional[str]) -> ProfileData:
        data = await self._fetch_or_empty(PROFILE_PATH, symbol, self.config.profile_ttl_seconds)
        try:
            return ProfileData.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Malformed profile for {symbol}: {e}")
            return ProfileData()

    async def aclose(self) -> None:
        await self._client.aclose()
