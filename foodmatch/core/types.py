"""Core domain types for offer/request matching."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Urgency(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    NORMAL = "normal"
    OPTIONAL = "optional"

    @property
    def level(self) -> int:
        return _URGENCY_LEVELS[self]

    @classmethod
    def parse(cls, label: Any) -> Urgency:
        """Map a free-form label to an Urgency; unknown labels become NORMAL."""
        if isinstance(label, Urgency):
            return label
        try:
            return cls(str(label).strip().lower())
        except ValueError:
            return cls.NORMAL


_URGENCY_LEVELS = {
    Urgency.CRITICAL: 4,
    Urgency.HIGH: 3,
    Urgency.NORMAL: 2,
    Urgency.OPTIONAL: 1,
}


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


@dataclass
class User:
    id: str
    rating: Optional[float] = None            # 0-5 star rating
    community_rating: Optional[float] = None  # 0-10
    needs: list[Listing] = field(default_factory=list)


@dataclass
class Listing:
    """A food item being offered or sought."""
    id: str
    type: str = ""
    description: str = ""
    location: Optional[GeoPoint] = None
    zone_type: Optional[str] = None
    estimated_value: Optional[float] = None
    user_estimated_value: Optional[float] = None
    urgency: Optional[Urgency] = None
    need_by_date: Optional[datetime] = None
    quantity: Optional[float] = None
    expiry_date: Optional[datetime] = None
    user: Optional[User] = None
    offering: Optional[Listing] = None        # what a requester gives back


@dataclass
class MatchScores:
    location: float = 0.0
    urgency: float = 0.0
    value: float = 0.0
    trust: float = 0.0
    seasonal: float = 0.5
    nutritional: float = 0.0
    community: float = 0.5
    match_type: float = 5.0
    total: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "location": self.location,
            "urgency": self.urgency,
            "value": self.value,
            "trust": self.trust,
            "seasonal": self.seasonal,
            "nutritional": self.nutritional,
            "community": self.community,
            "match_type": self.match_type,
            "total": self.total,
        }


@dataclass
class Match:
    id: str
    offer: Listing
    request: Listing
    scores: MatchScores
    type: str
    insights: dict[str, str] = field(default_factory=dict)
    diagnostics: list[str] = field(default_factory=list)
    kind: str = "match"


@dataclass
class TradeLoop:
    """A chain of offers whose value flows back to the original requester."""
    chain: list[Listing]
    kind: str = "trade_loop"

    @property
    def offer_ids(self) -> list[str]:
        return [o.id for o in self.chain]


@dataclass
class ValueEquivalence:
    """Running record of values observed for one (offer type, request type)."""
    observations: int = 0
    mean_offer_value: float = 0.0
    mean_request_value: float = 0.0

    def observe(self, offer_value: float, request_value: float) -> None:
        self.observations += 1
        n = self.observations
        self.mean_offer_value += (offer_value - self.mean_offer_value) / n
        self.mean_request_value += (request_value - self.mean_request_value) / n

    @property
    def ratio(self) -> float:
        if self.mean_request_value == 0:
            return 0.0
        return self.mean_offer_value / self.mean_request_value


@dataclass(frozen=True)
class MatchOutcome:
    success: bool
    rating: Optional[float] = None   # 0-5
    feedback: str = ""


@dataclass(frozen=True)
class HistoryEntry:
    match: Any                       # Match, or any object exposing ``id``
    outcome: MatchOutcome
    timestamp: datetime


# ── construction from data-layer dicts ──────────────────────────────────────

def _pick(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid date value: {raw!r}") from exc


def _parse_float(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {raw!r}") from exc


def geo_from_dict(data: Optional[dict[str, Any]]) -> Optional[GeoPoint]:
    if not data:
        return None
    lat = _pick(data, "lat", "latitude")
    lon = _pick(data, "lon", "lng", "longitude")
    if lat is None or lon is None:
        return None
    return GeoPoint(float(lat), float(lon))


def user_from_dict(data: Optional[dict[str, Any]]) -> Optional[User]:
    if not data:
        return None
    if _pick(data, "id") is None:
        raise ValueError("User record is missing 'id'")
    return User(
        id=str(data["id"]),
        rating=_parse_float(_pick(data, "rating")),
        community_rating=_parse_float(
            _pick(data, "community_rating", "communityRating")
        ),
        needs=[listing_from_dict(n) for n in data.get("needs") or []],
    )


def listing_from_dict(data: dict[str, Any]) -> Listing:
    """Build a Listing from a loosely-shaped record (camelCase or snake_case)."""
    if _pick(data, "id") is None:
        raise ValueError("Listing record is missing 'id'")

    urgency = _pick(data, "urgency")
    offering = _pick(data, "offering")
    return Listing(
        id=str(data["id"]),
        type=str(_pick(data, "type") or ""),
        description=str(_pick(data, "description") or ""),
        location=geo_from_dict(_pick(data, "location")),
        zone_type=_pick(data, "zone_type", "zoneType"),
        estimated_value=_parse_float(
            _pick(data, "estimated_value", "estimatedValue", "value")
        ),
        user_estimated_value=_parse_float(
            _pick(data, "user_estimated_value", "userEstimatedValue")
        ),
        urgency=Urgency.parse(urgency) if urgency is not None else None,
        need_by_date=_parse_datetime(_pick(data, "need_by_date", "needByDate")),
        quantity=_parse_float(_pick(data, "quantity")),
        expiry_date=_parse_datetime(_pick(data, "expiry_date", "expiryDate")),
        user=user_from_dict(_pick(data, "user")),
        offering=listing_from_dict(offering) if offering else None,
    )


def outcome_from_dict(data: Any) -> MatchOutcome:
    """Accept a MatchOutcome or a ``{success, rating, feedback}`` mapping."""
    if isinstance(data, MatchOutcome):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"Unsupported outcome value: {data!r}")
    return MatchOutcome(
        success=bool(data.get("success", False)),
        rating=_parse_float(data.get("rating")),
        feedback=str(data.get("feedback") or ""),
    )
