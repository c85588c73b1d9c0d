"""Human-readable labels and explanations for scored matches."""
from __future__ import annotations

URGENT_MATCH = "Urgent Match"
FAIR_TRADE = "Fair Trade"
LOOP_TRADE = "Loop Trade"


def match_label(direct: bool, urgency_score: float, urgent_threshold: float = 8.0) -> str:
    if urgency_score > urgent_threshold:
        return URGENT_MATCH
    if direct:
        return FAIR_TRADE
    return LOOP_TRADE


def seasonality_insight(score: float) -> str:
    if score >= 0.8:
        return "Perfect seasonal match! These items are currently in season."
    if score >= 0.6:
        return "Good seasonal alignment with some items in season."
    return "Consider seasonal alternatives for better freshness and value."


def nutrition_insight(score: float) -> str:
    if score >= 0.8:
        return "Excellent nutritional balance across food groups."
    if score >= 0.6:
        return "Good nutritional variety."
    return "Consider adding items from different food groups for better balance."


def community_insight(score: float) -> str:
    if score >= 0.8:
        return "High positive impact on community food security."
    if score >= 0.6:
        return "Moderate community benefit."
    return "Consider ways to increase community impact."


def location_insight(score: float, distance_km: float) -> str:
    if score <= 0:
        return "Location unknown or out of reach."
    return f"About {distance_km:.1f} km apart."


def build_insights(
    location: float,
    distance_km: float,
    seasonal: float,
    nutritional: float,
    community: float,
) -> dict[str, str]:
    return {
        "location": location_insight(location, distance_km),
        "seasonality": seasonality_insight(seasonal),
        "nutrition": nutrition_insight(nutritional),
        "community": community_insight(community),
    }
