"""Primary matching strategies consulted before the traditional algorithm.

A ``MatchDelegate`` is an externally supplied matcher with its own
algorithm (e.g. a hosted recommendation model). The engine calls it first;
``None``, an empty result, or an exception all fall back to the weighted
scoring algorithm.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from foodmatch.core.types import Listing, Match


class MatchDelegate(ABC):
    """Interface for preferred (e.g. model-driven) matchers."""

    @abstractmethod
    async def find_matches(
        self,
        request: Listing,
        offers: list[Listing],
    ) -> list[Match]:
        """Return ranked matches, or an empty list to defer to the fallback."""
        ...
