"""Aggregate statistics over ranked matches and recorded outcomes."""
from __future__ import annotations

import statistics
from collections import Counter
from typing import Any, Iterable

from foodmatch.core.types import HistoryEntry, Match, TradeLoop


def compute_outcome_stats(entries: Iterable[HistoryEntry]) -> dict[str, Any]:
    """Return a flat dict of outcome metrics suitable for JSON serialisation."""
    entries = list(entries)
    if not entries:
        return {
            "total_outcomes": 0,
            "successes": 0,
            "success_rate": 0,
            "mean_rating": 0,
            "mean_total_score": 0,
        }

    successes = sum(1 for e in entries if e.outcome.success)
    ratings = [e.outcome.rating for e in entries if e.outcome.rating is not None]
    totals = [
        e.match.scores.total for e in entries
        if getattr(e.match, "scores", None) is not None
    ]

    return {
        "total_outcomes": len(entries),
        "successes": successes,
        "success_rate": round(successes / len(entries), 4),
        "mean_rating": round(statistics.mean(ratings), 2) if ratings else 0,
        "mean_total_score": round(statistics.mean(totals), 3) if totals else 0,
    }


def summarise_matches(results: Iterable[Any]) -> dict[str, Any]:
    """Summarise a ``find_matches`` result list."""
    results = list(results)
    matches = [r for r in results if isinstance(r, Match)]
    loops = [r for r in results if isinstance(r, TradeLoop)]
    totals = [m.scores.total for m in matches]
    by_type = Counter(m.type for m in matches)

    return {
        "matches": len(matches),
        "trade_loops": len(loops),
        "by_type": dict(by_type),
        "best_total": round(max(totals), 3) if totals else 0,
        "mean_total": round(statistics.mean(totals), 3) if totals else 0,
        "defaulted_criteria": sum(len(m.diagnostics) for m in matches),
    }
