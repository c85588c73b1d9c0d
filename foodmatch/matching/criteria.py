"""Pure scoring functions for each match criterion.

Every function returns a value clamped to its declared range: ``[0, 10]``
for location, urgency, value, trust and match type; ``[0, 1]`` for the
seasonal, nutritional and community-impact criteria.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from foodmatch.core.config import LocationConfig, WeightsConfig
from foodmatch.core.types import Listing, MatchScores, Urgency
from foodmatch.matching.keywords import food_groups, seasonal_foods, words

_DAY_SECONDS = 24 * 60 * 60


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    if value is None or math.isnan(value):
        return low
    return max(low, min(high, value))


# ── location ────────────────────────────────────────────────────────────────

def zone_matches(offer: Listing, request: Listing) -> bool:
    # two unset zones count as the same zone
    return offer.zone_type == request.zone_type


def location_score(
    distance_km: float,
    zone_match: bool,
    mesh_strength: float,
    cfg: Optional[LocationConfig] = None,
) -> float:
    cfg = cfg or LocationConfig()
    if math.isinf(distance_km) or math.isnan(distance_km):
        return 0.0
    score = 10.0
    if distance_km > cfg.free_radius_km:
        over = distance_km - cfg.free_radius_km
        score -= min(cfg.max_penalty, over * cfg.penalty_per_km)
    if zone_match:
        score += cfg.zone_bonus
    score += mesh_strength
    return clamp(score)


# ── urgency ─────────────────────────────────────────────────────────────────

def days_until(when: Optional[datetime], now: datetime) -> Optional[float]:
    if when is None:
        return None
    if when.tzinfo is not None and now.tzinfo is None:
        # naive clocks are local time
        when = when.astimezone().replace(tzinfo=None)
    elif when.tzinfo is None and now.tzinfo is not None:
        when = when.astimezone(now.tzinfo)
    return (when - now).total_seconds() / _DAY_SECONDS


def urgency_score(
    urgency: Optional[Urgency],
    need_by_date: Optional[datetime],
    now: datetime,
) -> float:
    """Base 5 plus 2.5 per urgency level, adjusted by days until *need_by_date*.

    Future dates lose 0.5 per day (at most 3); due or past dates gain 1.
    Without a *need_by_date* there is no adjustment, so an undated request
    does not get the due-now bonus.
    """
    level = (urgency or Urgency.NORMAL).level
    score = 5.0 + level * 2.5
    days = days_until(need_by_date, now)
    if days is not None:
        if days > 0:
            score -= min(3.0, days * 0.5)
        else:
            score += 1.0
    return clamp(score)


# ── value / trust ───────────────────────────────────────────────────────────

def value_score(offer_value: float, request_value: float) -> float:
    high = max(offer_value, request_value)
    if high <= 0:
        return 10.0 if offer_value == request_value else 0.0
    diff = abs(offer_value - request_value) / high
    return clamp(10.0 - diff * 10.0)


def trust_score(offer_trust: float, request_trust: float) -> float:
    return clamp((offer_trust + request_trust) / 2)


# ── keyword heuristics ──────────────────────────────────────────────────────

def is_seasonal(description: str, month: int) -> bool:
    return bool(words(description) & seasonal_foods(month))


def seasonal_score(offer: Listing, request: Listing, month: int) -> float:
    offer_seasonal = is_seasonal(offer.description, month)
    request_seasonal = is_seasonal(request.description, month)
    if offer_seasonal and request_seasonal:
        return 1.0
    if offer_seasonal or request_seasonal:
        return 0.7
    return 0.5


def nutritional_score(offer: Listing, request: Listing) -> float:
    groups = food_groups(offer.description) | food_groups(request.description)
    return min(len(groups) / 3, 1.0)


def community_score(offer: Listing, request: Listing, now: datetime) -> float:
    """Mean of serving size, freshness, accessibility and community rating."""
    quantity = offer.quantity if offer.quantity is not None else 1.0
    serving = clamp(quantity / 5, 0.0, 1.0)

    days = days_until(offer.expiry_date, now)
    freshness = 0.5 if days is None else clamp(days / 7, 0.0, 1.0)

    accessibility = 1.0 if request.zone_type == "food-desert" else 0.6

    rating = offer.user.community_rating if offer.user else None
    community = clamp((rating if rating is not None else 5.0) / 10, 0.0, 1.0)

    return (serving + freshness + accessibility + community) / 4


# ── match type ──────────────────────────────────────────────────────────────

def is_direct_match(offer: Listing, request: Listing) -> bool:
    return offer.type == request.type


def match_type_score(offer: Listing, request: Listing) -> float:
    return 10.0 if is_direct_match(offer, request) else 5.0


# ── composite ───────────────────────────────────────────────────────────────

def weighted_total(
    scores: MatchScores,
    weights: Optional[WeightsConfig] = None,
    rescale_unit_criteria: bool = False,
) -> float:
    """Weighted sum of all criteria.

    Seasonal, nutritional and community scores enter on their native 0-1
    scale unless *rescale_unit_criteria* lifts them to 0-10 first.
    """
    w = weights or WeightsConfig()
    unit = 10.0 if rescale_unit_criteria else 1.0
    return (
        scores.location * w.location
        + scores.urgency * w.urgency
        + scores.value * w.value
        + scores.trust * w.trust
        + scores.seasonal * unit * w.seasonal
        + scores.nutritional * unit * w.nutritional
        + scores.community * unit * w.community
        + scores.match_type * w.match_type
    )
