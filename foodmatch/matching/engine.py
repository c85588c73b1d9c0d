"""Weighted multi-criteria matching of food offers against requests.

Usage:
    engine = MatchingEngine(ai_model=HeuristicDelegate())
    ranked = await engine.find_matches(request, offers)
    await engine.record_match_outcome(ranked[0], MatchOutcome(success=True, rating=5))

Every criterion evaluator absorbs its own failures: errors are sent to the
shared :class:`ErrorReporter` and the criterion contributes its default.
``find_matches`` itself never raises; a failed pass yields an empty list,
which callers cannot tell apart from "no matches".
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from foodmatch.core.config import EngineConfig, validate_config
from foodmatch.core.geo import safe_distance_km
from foodmatch.core.logging import ErrorReporter, EventLogger
from foodmatch.core.types import (
    GeoPoint,
    HistoryEntry,
    Listing,
    Match,
    MatchOutcome,
    MatchScores,
    TradeLoop,
    Urgency,
    User,
    ValueEquivalence,
    outcome_from_dict,
)
from foodmatch.delegates.base import DelegateCapabilities, maybe_await
from foodmatch.matching import criteria
from foodmatch.matching.insights import build_insights, match_label
from foodmatch.matching.matcher import MatchDelegate
from foodmatch.matching.tradeloops import NeedsProvider, TradeLoopFinder, needs_from_profile
from foodmatch.matching.trust import TrustPolicy, build_trust_policy

logger = logging.getLogger(__name__)

MeshSignal = Callable[[GeoPoint, GeoPoint], Awaitable[float]]
RankedResult = Union[Match, TradeLoop]


@dataclass
class CriterionResult:
    value: float
    error: Optional[str] = None

    @property
    def defaulted(self) -> bool:
        return self.error is not None


class MatchingEngine:
    """Scores and ranks offers for a request; learns from reported outcomes.

    Engine state (trust scores, value equivalencies, match history) lives
    as long as the instance and is only mutated under ``self._lock``.
    """

    def __init__(
        self,
        ai_model: Any = None,
        config: Optional[EngineConfig] = None,
        match_delegate: Optional[MatchDelegate] = None,
        trust_policy: Optional[TrustPolicy] = None,
        needs_provider: NeedsProvider = needs_from_profile,
        mesh_signal: Optional[MeshSignal] = None,
        reporter: Optional[ErrorReporter] = None,
        event_logger: Optional[EventLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or EngineConfig()
        self.ai_model = ai_model
        self.match_delegate = match_delegate
        self.trust_policy = trust_policy or build_trust_policy(self.config.trust)
        self.event_logger = event_logger
        self.reporter = reporter or ErrorReporter(
            capacity=self.config.error_buffer, event_logger=event_logger,
        )
        self._capabilities = DelegateCapabilities.resolve(ai_model)
        self._needs_provider = needs_provider
        self._mesh_signal = mesh_signal or self._default_mesh_strength
        self._clock = clock
        self._lock = asyncio.Lock()

        self.trust_scores: dict[str, float] = {}
        self.value_equivalency: dict[tuple[str, str], ValueEquivalence] = {}
        self.match_history: dict[str, HistoryEntry] = {}

        for warning in validate_config(self.config):
            logger.warning("Config: %s", warning)
        if ai_model is not None:
            logger.debug(
                "AI delegate %s provides: %s",
                type(ai_model).__name__,
                ", ".join(self._capabilities.available) or "nothing",
            )

    # ── distance ─────────────────────────────────────────────────────────

    def calculate_distance(self, a: Optional[GeoPoint], b: Optional[GeoPoint]) -> float:
        """Kilometres between *a* and *b*; ``inf`` when either is unusable."""
        return safe_distance_km(a, b)

    # ── failure containment ──────────────────────────────────────────────

    async def _criterion(
        self,
        name: str,
        default: float,
        fn: Callable[..., Awaitable[float]],
        *args: Any,
    ) -> CriterionResult:
        try:
            return CriterionResult(await fn(*args))
        except Exception as exc:
            diagnostic = self.reporter.report(exc, f"evaluate_{name}")
            return CriterionResult(default, diagnostic.summary())

    # ── location ─────────────────────────────────────────────────────────

    async def _default_mesh_strength(self, a: GeoPoint, b: GeoPoint) -> float:
        return self.config.location.mesh_bonus

    async def _score_location(self, offer: Listing, request: Listing) -> float:
        if offer is None or request is None:
            return 0.0
        if offer.location is None or request.location is None:
            return 0.0
        distance = self.calculate_distance(offer.location, request.location)
        mesh = await self._mesh_signal(offer.location, request.location)
        return criteria.location_score(
            distance,
            criteria.zone_matches(offer, request),
            mesh,
            self.config.location,
        )

    async def evaluate_location_match(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("location", 0.0, self._score_location, offer, request)).value

    # ── urgency ──────────────────────────────────────────────────────────

    async def resolve_urgency(self, request: Listing) -> Urgency:
        """Explicit urgency, else the delegate's classification, else NORMAL."""
        if request.urgency is not None:
            return Urgency.parse(request.urgency)
        classify = self._capabilities.classify_urgency
        if classify is None or not request.description:
            return Urgency.NORMAL
        try:
            label = await maybe_await(classify(request.description))
        except Exception as exc:
            self.reporter.report(exc, "classify_urgency", request_id=request.id)
            return Urgency.NORMAL
        return Urgency.parse(label)

    async def _score_urgency(self, offer: Listing, request: Listing) -> float:
        urgency = await self.resolve_urgency(request)
        return criteria.urgency_score(urgency, request.need_by_date, self._clock())

    async def evaluate_urgency_match(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("urgency", 0.0, self._score_urgency, offer, request)).value

    # ── value ────────────────────────────────────────────────────────────

    async def calculate_item_value(self, item: Listing) -> float:
        """Explicit value, else the delegate's estimate, else the default."""
        if item.estimated_value is not None:
            return float(item.estimated_value)
        if item.user_estimated_value is not None:
            return float(item.user_estimated_value)
        default = self.config.scoring.default_value
        estimate = self._capabilities.estimate_value
        if estimate is None:
            return default
        try:
            return float(await maybe_await(estimate(item)))
        except Exception as exc:
            self.reporter.report(exc, "estimate_value", item_id=item.id)
            return default

    async def _update_value_equivalency(
        self,
        offer_type: str,
        request_type: str,
        offer_value: float,
        request_value: float,
    ) -> None:
        async with self._lock:
            key = (offer_type or "", request_type or "")
            record = self.value_equivalency.setdefault(key, ValueEquivalence())
            record.observe(offer_value, request_value)

    async def _score_value(self, offer: Listing, request: Listing) -> float:
        offer_value = await self.calculate_item_value(offer)
        request_value = await self.calculate_item_value(request)
        await self._update_value_equivalency(
            offer.type, request.type, offer_value, request_value,
        )
        return criteria.value_score(offer_value, request_value)

    async def evaluate_value_match(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("value", 0.0, self._score_value, offer, request)).value

    # ── trust ────────────────────────────────────────────────────────────

    def trust_score_for(self, user: Optional[User]) -> float:
        default = self.config.scoring.default_trust
        if user is None:
            return default
        return self.trust_scores.get(str(user.id), default)

    def set_trust_score(self, user_id: Any, score: float) -> None:
        self.trust_scores[str(user_id)] = criteria.clamp(score)

    async def _score_trust(self, offer_user: Optional[User], request_user: Optional[User]) -> float:
        return criteria.trust_score(
            self.trust_score_for(offer_user), self.trust_score_for(request_user),
        )

    async def evaluate_trust_match(
        self,
        offer_user: Optional[User],
        request_user: Optional[User],
    ) -> float:
        return (await self._criterion("trust", 0.0, self._score_trust, offer_user, request_user)).value

    # ── keyword heuristics ───────────────────────────────────────────────

    async def _score_seasonal(self, offer: Listing, request: Listing) -> float:
        return criteria.seasonal_score(offer, request, self._clock().month)

    async def evaluate_seasonal_match(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("seasonal", 0.5, self._score_seasonal, offer, request)).value

    async def _score_nutritional(self, offer: Listing, request: Listing) -> float:
        return criteria.nutritional_score(offer, request)

    async def evaluate_nutritional_match(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("nutritional", 0.5, self._score_nutritional, offer, request)).value

    async def _score_community(self, offer: Listing, request: Listing) -> float:
        return criteria.community_score(offer, request, self._clock())

    async def evaluate_community_impact(self, offer: Listing, request: Listing) -> float:
        return (await self._criterion("community", 0.5, self._score_community, offer, request)).value

    # ── match type ───────────────────────────────────────────────────────

    def is_direct_match(self, offer: Listing, request: Listing) -> bool:
        return criteria.is_direct_match(offer, request)

    def match_type_score(self, offer: Listing, request: Listing) -> float:
        return criteria.match_type_score(offer, request)

    # ── scoring a pair ───────────────────────────────────────────────────

    async def score_match(self, offer: Listing, request: Listing) -> Match:
        """Evaluate every criterion for one pair and build the Match."""
        results = {
            "location": await self._criterion("location", 0.0, self._score_location, offer, request),
            "urgency": await self._criterion("urgency", 0.0, self._score_urgency, offer, request),
            "value": await self._criterion("value", 0.0, self._score_value, offer, request),
            "trust": await self._criterion("trust", 0.0, self._score_trust, offer.user, request.user),
            "seasonal": await self._criterion("seasonal", 0.5, self._score_seasonal, offer, request),
            "nutritional": await self._criterion("nutritional", 0.5, self._score_nutritional, offer, request),
            "community": await self._criterion("community", 0.5, self._score_community, offer, request),
        }
        scores = MatchScores(
            location=results["location"].value,
            urgency=results["urgency"].value,
            value=results["value"].value,
            trust=results["trust"].value,
            seasonal=results["seasonal"].value,
            nutritional=results["nutritional"].value,
            community=results["community"].value,
            match_type=self.match_type_score(offer, request),
        )
        scores.total = criteria.weighted_total(
            scores,
            self.config.weights,
            self.config.scoring.rescale_unit_criteria,
        )

        return Match(
            id=f"{request.id}:{offer.id}",
            offer=offer,
            request=request,
            scores=scores,
            type=match_label(
                self.is_direct_match(offer, request),
                scores.urgency,
                self.config.scoring.urgent_label_threshold,
            ),
            insights=build_insights(
                scores.location,
                self.calculate_distance(offer.location, request.location),
                scores.seasonal,
                scores.nutritional,
                scores.community,
            ),
            diagnostics=[r.error for r in results.values() if r.defaulted],
        )

    # ── ranking ──────────────────────────────────────────────────────────

    async def find_matches(
        self,
        request: Listing,
        available_offers: Iterable[Listing],
    ) -> list[RankedResult]:
        """Ranked matches for *request*; trade loops are appended last.

        The match delegate is preferred when configured; no delegate, no
        delegate matches, or a delegate error all degrade to the weighted
        algorithm.
        """
        try:
            offers = list(available_offers)
        except Exception as exc:
            self.reporter.report(exc, "find_matches")
            return []

        if self.match_delegate is not None:
            try:
                delegated = await self.match_delegate.find_matches(request, offers)
            except Exception as exc:
                self.reporter.report(
                    exc, "find_matches.delegate",
                    request_id=getattr(request, "id", None),
                )
                delegated = []
            if delegated:
                return list(delegated)
            logger.info(
                "Match delegate returned nothing for %s; using weighted scoring",
                getattr(request, "id", None),
            )

        return await self.find_matches_traditional(request, offers)

    def _within_radius(self, offer: Any, request: Listing) -> bool:
        offer_loc = getattr(offer, "location", None)
        request_loc = getattr(request, "location", None)
        if offer_loc is None or request_loc is None:
            return False
        distance = self.calculate_distance(offer_loc, request_loc)
        return distance <= self.config.location.max_distance_km

    async def find_matches_traditional(
        self,
        request: Listing,
        available_offers: Iterable[Listing],
    ) -> list[RankedResult]:
        try:
            pool = [o for o in available_offers if o is not None]
            candidates = [o for o in pool if self._within_radius(o, request)]
            logger.debug(
                "Request %s: %d/%d offers within %.0f km",
                request.id, len(candidates), len(pool),
                self.config.location.max_distance_km,
            )

            resolved = replace(request, urgency=await self.resolve_urgency(request))

            matches: list[Match] = []
            for offer in candidates:
                try:
                    matches.append(await self.score_match(offer, resolved))
                except Exception as exc:
                    self.reporter.report(
                        exc, "score_match",
                        offer_id=getattr(offer, "id", None), request_id=request.id,
                    )

            matches.sort(key=lambda m: m.scores.total, reverse=True)

            loops: list[TradeLoop] = []
            if self.config.trade_loops.enabled:
                loops = await self.find_trade_loops(request, pool)

            self._log_results(request, matches, loops)
            return [*matches, *loops]
        except Exception as exc:
            self.reporter.report(
                exc, "find_matches_traditional",
                request_id=getattr(request, "id", None),
            )
            return []

    def _log_results(
        self,
        request: Listing,
        matches: list[Match],
        loops: list[TradeLoop],
    ) -> None:
        logger.info(
            "Request %s: %d matches, %d trade loops (best total %.2f)",
            request.id, len(matches), len(loops),
            matches[0].scores.total if matches else 0.0,
        )
        if self.event_logger is None:
            return
        for rank, match in enumerate(matches, 1):
            self.event_logger.log_match(match, rank)
        for loop in loops:
            self.event_logger.log_trade_loop(loop, request.id)

    # ── trade loops ──────────────────────────────────────────────────────

    async def find_trade_loops(
        self,
        request: Listing,
        available_offers: Iterable[Listing],
        max_depth: Optional[int] = None,
    ) -> list[TradeLoop]:
        cfg = self.config.trade_loops
        finder = TradeLoopFinder(
            value_match=self.evaluate_value_match,
            needs_provider=self._needs_provider,
            max_depth=cfg.max_depth,
            threshold=cfg.threshold,
            max_pool=cfg.max_pool,
            time_budget_sec=cfg.time_budget_sec,
            max_loops=cfg.max_loops,
        )
        try:
            return await finder.find(request, list(available_offers), max_depth)
        except Exception as exc:
            self.reporter.report(
                exc, "find_trade_loops", request_id=getattr(request, "id", None),
            )
            return []

    # ── outcomes ─────────────────────────────────────────────────────────

    async def record_match_outcome(self, match: Any, outcome: Any) -> None:
        """Store the outcome, adjust trust, and let the delegate learn.

        Re-recording an id replaces the earlier entry (logged at WARNING).
        """
        try:
            outcome = outcome_from_dict(outcome)
            match_id = getattr(match, "id", None)
            if match_id is None:
                raise ValueError("match has no id")
            entry = HistoryEntry(match=match, outcome=outcome, timestamp=self._clock())
            async with self._lock:
                if match_id in self.match_history:
                    logger.warning("Replacing recorded outcome for match %s", match_id)
                self.match_history[match_id] = entry
            if self.event_logger is not None:
                self.event_logger.log_outcome(entry)
            await self._update_trust_scores(match, outcome)
        except Exception as exc:
            self.reporter.report(
                exc, "record_match_outcome", match_id=getattr(match, "id", None),
            )
            if not isinstance(outcome, MatchOutcome):
                return

        learn = self._capabilities.learn_from_outcome
        if learn is None:
            return
        try:
            await maybe_await(learn(match, outcome))
        except Exception as exc:
            self.reporter.report(
                exc, "learn_from_outcome", match_id=getattr(match, "id", None),
            )

    async def _update_trust_scores(self, match: Any, outcome: MatchOutcome) -> None:
        parties = (
            ("offer", getattr(getattr(match, "offer", None), "user", None)),
            ("request", getattr(getattr(match, "request", None), "user", None)),
        )
        async with self._lock:
            for role, user in parties:
                if user is None:
                    continue
                current = self.trust_score_for(user)
                updated = self.trust_policy.adjust(current, outcome, role)
                if updated != current:
                    self.set_trust_score(user.id, updated)
                    logger.debug(
                        "Trust for user %s: %.2f -> %.2f", user.id, current, updated,
                    )

    def get_history(self, match_id: str) -> Optional[HistoryEntry]:
        return self.match_history.get(match_id)

    @property
    def history(self) -> list[HistoryEntry]:
        return list(self.match_history.values())
