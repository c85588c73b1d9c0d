"""Trust-score adjustment policies applied when outcomes are recorded."""
from __future__ import annotations

from abc import ABC, abstractmethod

from foodmatch.core.config import TrustConfig
from foodmatch.core.types import MatchOutcome
from foodmatch.matching.criteria import clamp


class TrustPolicy(ABC):
    """Maps a party's current trust score and an outcome to a new score."""

    @abstractmethod
    def adjust(self, current: float, outcome: MatchOutcome, role: str) -> float:
        """*role* is ``"offer"`` or ``"request"``."""
        ...


class NoopTrustPolicy(TrustPolicy):
    """Leaves trust untouched; outcomes are only recorded."""

    def adjust(self, current: float, outcome: MatchOutcome, role: str) -> float:
        return current


class RatingTrustPolicy(TrustPolicy):
    """Nudges both parties by success, then pulls toward the star rating.

    A 0-5 star rating maps to the 0-10 trust scale as ``rating * 2``.
    """

    def __init__(
        self,
        success_step: float = 0.5,
        failure_step: float = 1.0,
        rating_weight: float = 0.2,
    ):
        self.success_step = success_step
        self.failure_step = failure_step
        self.rating_weight = rating_weight

    def adjust(self, current: float, outcome: MatchOutcome, role: str) -> float:
        score = current + (self.success_step if outcome.success else -self.failure_step)
        if outcome.rating is not None:
            target = clamp(outcome.rating * 2)
            score += (target - score) * self.rating_weight
        return clamp(score)


def build_trust_policy(cfg: TrustConfig) -> TrustPolicy:
    if cfg.policy == "rating":
        return RatingTrustPolicy(
            success_step=cfg.success_step,
            failure_step=cfg.failure_step,
            rating_weight=cfg.rating_weight,
        )
    if cfg.policy == "none":
        return NoopTrustPolicy()
    raise ValueError(f"Unknown trust policy: {cfg.policy}")
