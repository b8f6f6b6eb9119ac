"""
Watchlist Toggle Control

Interactive add/remove control bound to one symbol, with optimistic
local state and rollback.

STATE MACHINE:
    idle --activate--> pending --success--> confirmed
                              +-failure--> reverted

- Membership flips BEFORE the mutation is issued (optimistic)
- The mutation result handler is the only thing that leaves `pending`
- While pending the control is disabled; activations are ignored
- Without a signed-in user the control notifies, navigates to sign-in,
  and never mutates
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional

from .config import MESSAGES, SIGN_IN_URL
from .models import WatchlistResult

logger = logging.getLogger(__name__)


class TogglePhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class WatchlistToggle:
    """
    Optimistic watchlist toggle.

    Args:
        store: Anything with async add(email, symbol, company) and
            remove(email, symbol) returning a WatchlistResult
        symbol: Ticker the control is bound to
        company: Company name stored on add
        user_email: Current user's email, None when signed out
        in_watchlist: Initial membership
        notify: Callable(level, message) for toast-style notifications
        navigate: Callable(url) used to redirect to sign-in
        on_change: Callable(symbol, added) fired after a confirmed mutation
        refresh: Callable() (sync or async) refreshing dependent views
    """

    def __init__(
        self,
        store,
        symbol: str,
        company: str,
        user_email: Optional[str] = None,
        in_watchlist: bool = False,
        notify: Optional[Callable[[str, str], Any]] = None,
        navigate: Optional[Callable[[str], Any]] = None,
        on_change: Optional[Callable[[str, bool], Any]] = None,
        refresh: Optional[Callable[[], Any]] = None,
    ):
        self.store = store
        self.symbol = symbol
        self.company = company
        self.user_email = user_email
        self.added = bool(in_watchlist)
        self.phase = TogglePhase.IDLE
        self._notify = notify or (lambda level, message: None)
        self._navigate = navigate or (lambda url: None)
        self._on_change = on_change
        self._refresh = refresh

    # ==================== VIEW STATE ====================

    @property
    def pending(self) -> bool:
        return self.phase == TogglePhase.PENDING

    @property
    def disabled(self) -> bool:
        return self.pending

    @property
    def label(self) -> str:
        return "Remove from Watchlist" if self.added else "Add to Watchlist"

    @property
    def title(self) -> str:
        if self.added:
            return f"Remove {self.symbol} from watchlist"
        return f"Add {self.symbol} to watchlist"

    # ==================== ACTIVATION ====================

    async def activate(self) -> TogglePhase:
        """
        Handle a click. Returns the phase the control ends in.

        A click while a mutation is in flight is ignored and returns
        PENDING without issuing a second mutation.
        """
        if self.pending:
            return self.phase

        if not self.user_email:
            self._notify("error", MESSAGES["SIGN_IN_REQUIRED"])
            self._navigate(SIGN_IN_URL)
            return self.phase

        previous = self.added
        target = not previous

        self.added = target
        self.phase = TogglePhase.PENDING

        try:
            if target:
                result = await self.store.add(self.user_email, self.symbol, self.company)
            else:
                result = await self.store.remove(self.user_email, self.symbol)
            return await self._settle(result, previous, target)
        except Exception as e:
            logger.error(f"Watchlist action error for {self.symbol}: {e}")
            return self._revert(previous, MESSAGES["UNEXPECTED"])

    async def _settle(self, result: WatchlistResult, previous: bool, target: bool) -> TogglePhase:
        if not result.success:
            return self._revert(previous, result.message)

        # Phase commits only once listeners and refresh have completed
        self._notify("success", result.message)
        if self._on_change:
            self._on_change(self.symbol, target)
        if self._refresh:
            await _maybe_await(self._refresh())
        self.phase = TogglePhase.CONFIRMED
        return self.phase

    def _revert(self, previous: bool, message: str) -> TogglePhase:
        self.added = previous
        self.phase = TogglePhase.REVERTED
        self._notify("error", message)
        return self.phase
