"""Write summary JSON and ranked-matches CSV to the run directory."""
from __future__ import annotations

import csv
import json
import os
from typing import Any, Iterable

from foodmatch.core.types import Match, TradeLoop


def write_summary(metrics: dict[str, Any], run_dir: str) -> str:
    """Write aggregate metrics as ``summary.json``."""
    path = os.path.join(run_dir, "summary.json")
    with open(path, "w") as f:
        json.dump(metrics, f, indent=2)
    return path


_MATCH_FIELDS = [
    "rank",
    "kind",
    "match_id",
    "offer_id",
    "offer_type",
    "match_type",
    "location",
    "urgency",
    "value",
    "trust",
    "seasonal",
    "nutritional",
    "community",
    "match_type_score",
    "total",
    "chain",
]


def write_matches_csv(results: Iterable[Any], run_dir: str) -> str:
    """Write one row per ranked match or trade loop as ``matches.csv``."""
    path = os.path.join(run_dir, "matches.csv")
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_MATCH_FIELDS)
        writer.writeheader()
        for rank, r in enumerate(results, 1):
            if isinstance(r, Match):
                s = r.scores
                writer.writerow({
                    "rank": rank,
                    "kind": r.kind,
                    "match_id": r.id,
                    "offer_id": r.offer.id,
                    "offer_type": r.offer.type,
                    "match_type": r.type,
                    "location": round(s.location, 3),
                    "urgency": round(s.urgency, 3),
                    "value": round(s.value, 3),
                    "trust": round(s.trust, 3),
                    "seasonal": round(s.seasonal, 3),
                    "nutritional": round(s.nutritional, 3),
                    "community": round(s.community, 3),
                    "match_type_score": s.match_type,
                    "total": round(s.total, 4),
                    "chain": "",
                })
            elif isinstance(r, TradeLoop):
                writer.writerow({
                    "rank": rank,
                    "kind": r.kind,
                    "chain": " -> ".join(r.offer_ids),
                })
    return path
