"""AI delegate capability interface.

A delegate is any object offering some of::

    classify_urgency(description) -> urgency label
    estimate_value(item) -> number
    learn_from_outcome(match, outcome) -> None

Methods may be plain or ``async``. Missing methods are tolerated: the engine
resolves the object into a :class:`DelegateCapabilities` record and uses the
documented default wherever a capability is ``None``.
"""
from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from foodmatch.core.types import Listing, MatchOutcome


class AIDelegate(ABC):
    """Base class for shipped delegates. Subclasses may omit capabilities."""

    @property
    @abstractmethod
    def delegate_type(self) -> str:
        """A short identifier for this delegate class."""
        ...


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class DelegateCapabilities:
    classify_urgency: Optional[Callable[[str], Any]] = None
    estimate_value: Optional[Callable[[Listing], Any]] = None
    learn_from_outcome: Optional[Callable[[Any, MatchOutcome], Any]] = None

    @classmethod
    def resolve(cls, delegate: Any) -> DelegateCapabilities:
        if delegate is None:
            return cls()

        def _method(name: str) -> Optional[Callable]:
            fn = getattr(delegate, name, None)
            return fn if callable(fn) else None

        return cls(
            classify_urgency=_method("classify_urgency"),
            estimate_value=_method("estimate_value"),
            learn_from_outcome=_method("learn_from_outcome"),
        )

    @property
    def available(self) -> list[str]:
        return [
            name for name in ("classify_urgency", "estimate_value", "learn_from_outcome")
            if getattr(self, name) is not None
        ]
