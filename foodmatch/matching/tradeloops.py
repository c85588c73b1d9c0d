"""Depth-bounded search for circular multi-party trades."""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Optional

from foodmatch.core.types import Listing, TradeLoop, User

logger = logging.getLogger(__name__)

ValueMatch = Callable[[Listing, Listing], Awaitable[float]]
NeedsProvider = Callable[[Optional[User]], Awaitable[list[Listing]]]


async def needs_from_profile(user: Optional[User]) -> list[Listing]:
    """Default needs provider: the open requests attached to the user."""
    if user is None:
        return []
    return list(user.needs)


class _BudgetExceeded(Exception):
    pass


class TradeLoopFinder:
    """Finds chains of offers that route value back to the requester.

    Starting from the request, each step extends the chain with an unused
    offer whose value match against the current frontier exceeds
    *threshold*. Whenever the newest offer's owner needs something the
    original requester is offering, the chain so far is recorded as a loop.

    The search is exponential in *max_depth*; *max_pool*, *time_budget_sec*
    and *max_loops* bound it further. Hitting a budget stops the search and
    returns the loops found so far.
    """

    def __init__(
        self,
        value_match: ValueMatch,
        needs_provider: NeedsProvider = needs_from_profile,
        max_depth: int = 3,
        threshold: float = 7.0,
        max_pool: Optional[int] = None,
        time_budget_sec: Optional[float] = None,
        max_loops: Optional[int] = None,
    ):
        self._value_match = value_match
        self._needs = needs_provider
        self.max_depth = max_depth
        self.threshold = threshold
        self.max_pool = max_pool
        self.time_budget_sec = time_budget_sec
        self.max_loops = max_loops

    async def find(
        self,
        request: Listing,
        offers: list[Listing],
        max_depth: Optional[int] = None,
    ) -> list[TradeLoop]:
        depth_limit = self.max_depth if max_depth is None else max_depth
        pool = list(offers)
        if self.max_pool is not None:
            pool = pool[: self.max_pool]
        deadline = (
            time.monotonic() + self.time_budget_sec
            if self.time_budget_sec is not None
            else None
        )

        loops: list[TradeLoop] = []
        chain: list[Listing] = []
        visited: set[str] = set()

        def check_budget() -> None:
            if deadline is not None and time.monotonic() > deadline:
                raise _BudgetExceeded("time budget exhausted")
            if self.max_loops is not None and len(loops) >= self.max_loops:
                raise _BudgetExceeded("loop limit reached")

        async def closes_loop(offer: Listing) -> bool:
            if request.offering is None:
                return False
            for need in await self._needs(offer.user):
                if await self._value_match(request.offering, need) > self.threshold:
                    return True
            return False

        async def extend(current: Listing, depth: int) -> None:
            if depth >= depth_limit:
                return
            for offer in pool:
                if offer.id in visited:
                    continue
                check_budget()
                if await self._value_match(offer, current) <= self.threshold:
                    continue
                visited.add(offer.id)
                chain.append(offer)
                try:
                    if await closes_loop(offer):
                        loops.append(TradeLoop(chain=list(chain)))
                    await extend(offer, depth + 1)
                finally:
                    chain.pop()
                    visited.discard(offer.id)

        try:
            await extend(request, 0)
        except _BudgetExceeded as exc:
            logger.info(
                "Trade loop search for %s stopped early (%s); %d loops found",
                request.id, exc, len(loops),
            )
        return loops
