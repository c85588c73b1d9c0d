"""Keyword heuristic delegate, used when no model is configured."""
from __future__ import annotations

from collections import Counter
from typing import Any

from foodmatch.core.types import Listing, MatchOutcome, Urgency
from foodmatch.delegates.base import AIDelegate
from foodmatch.matching.keywords import words

_CRITICAL = {"emergency", "immediately", "starving", "nothing"}
_HIGH = {"urgent", "urgently", "asap", "today", "tonight", "tomorrow"}
_OPTIONAL = {"whenever", "eventually", "someday"}
_OPTIONAL_PHRASES = ("no rush", "not urgent", "if available")


class HeuristicDelegate(AIDelegate):
    """Deterministic delegate: keyword urgency, self-reported value.

    The urgency rules scan the description in priority order
    (critical → optional → high), so "not urgent" is not read as high.
    """

    def __init__(self, default_value: float = 5.0):
        self.default_value = default_value
        self.outcomes: Counter[str] = Counter()

    @property
    def delegate_type(self) -> str:
        return "heuristic"

    async def classify_urgency(self, description: str) -> str:
        text = (description or "").lower()
        tokens = words(text)
        if tokens & _CRITICAL:
            return Urgency.CRITICAL.value
        if tokens & _OPTIONAL or any(p in text for p in _OPTIONAL_PHRASES):
            return Urgency.OPTIONAL.value
        if tokens & _HIGH:
            return Urgency.HIGH.value
        return Urgency.NORMAL.value

    async def estimate_value(self, item: Listing) -> float:
        if item.user_estimated_value is not None:
            return item.user_estimated_value
        return self.default_value

    async def learn_from_outcome(self, match: Any, outcome: MatchOutcome) -> None:
        self.outcomes["success" if outcome.success else "failure"] += 1
