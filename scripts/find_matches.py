#!/usr/bin/env python3
"""CLI entry-point: rank offers for one request from a JSON listings file."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import time

# Ensure project root is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from foodmatch.core.config import EngineConfig, load_config  # noqa: E402
from foodmatch.core.logging import EventLogger  # noqa: E402
from foodmatch.core.types import Match, TradeLoop, listing_from_dict  # noqa: E402
from foodmatch.delegates.factory import build_delegate  # noqa: E402
from foodmatch.evaluation.metrics import summarise_matches  # noqa: E402
from foodmatch.evaluation.reports import write_matches_csv, write_summary  # noqa: E402
from foodmatch.matching.engine import MatchingEngine  # noqa: E402


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Rank food offers against a request."
    )
    p.add_argument("--listings", type=str, required=True,
                   help='JSON file: {"request": {...}, "offers": [...]}')
    p.add_argument("--config", type=str, default=None,
                   help="Path to YAML config file")
    p.add_argument("--delegate", type=str, default=None,
                   choices=["none", "heuristic", "ollama"])
    p.add_argument("--ollama_model", type=str, default=None)
    p.add_argument("--max_distance_km", type=float, default=None)
    p.add_argument("--max_depth", type=int, default=None,
                   help="Trade loop search depth")
    p.add_argument("--no_trade_loops", action="store_true")
    p.add_argument("--rescale", action="store_true",
                   help="Lift 0-1 criteria to 0-10 before weighting")
    p.add_argument("--output_dir", type=str, default=None)
    p.add_argument("--log_events", action="store_true",
                   help="Write events.jsonl to the run directory")
    p.add_argument("--top", type=int, default=10)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def _apply_overrides(cfg: EngineConfig, args: argparse.Namespace) -> None:
    """Mutate *cfg* in-place with any non-None CLI overrides."""
    if args.delegate is not None:
        cfg.delegate = args.delegate
    if args.ollama_model is not None:
        cfg.llm.model = args.ollama_model
    if args.max_distance_km is not None:
        cfg.location.max_distance_km = args.max_distance_km
    if args.max_depth is not None:
        cfg.trade_loops.max_depth = args.max_depth
    if args.no_trade_loops:
        cfg.trade_loops.enabled = False
    if args.rescale:
        cfg.scoring.rescale_unit_criteria = True
    if args.output_dir is not None:
        cfg.output_dir = args.output_dir
    if args.log_events:
        cfg.log_events = True


def _load_listings(path: str):
    with open(path) as f:
        data = json.load(f)
    if "request" not in data:
        raise ValueError(f"{path}: missing 'request'")
    request = listing_from_dict(data["request"])
    offers = [listing_from_dict(o) for o in data.get("offers", [])]
    return request, offers


def _print_results(results: list, top: int) -> None:
    shown = 0
    for r in results:
        if isinstance(r, Match) and shown < top:
            shown += 1
            s = r.scores
            print(
                f"  {shown:>2}. {r.offer.id:<12} {r.type:<13} total={s.total:.2f}  "
                f"loc={s.location:.1f} urg={s.urgency:.1f} val={s.value:.1f} "
                f"trust={s.trust:.1f}"
            )
        elif isinstance(r, TradeLoop):
            print(f"  loop: {' -> '.join(r.offer_ids)}")


async def _run(cfg: EngineConfig, request, offers, run_dir: str) -> list:
    event_logger = EventLogger(run_dir) if cfg.log_events else None
    engine = MatchingEngine(
        ai_model=build_delegate(cfg),
        config=cfg,
        event_logger=event_logger,
    )
    try:
        return await engine.find_matches(request, offers)
    finally:
        if event_logger is not None:
            event_logger.close()


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config) if args.config else EngineConfig()
    _apply_overrides(cfg, args)

    try:
        request, offers = _load_listings(args.listings)
    except (OSError, ValueError) as exc:
        print(f"Cannot load listings: {exc}", file=sys.stderr)
        sys.exit(1)

    timestamp = time.strftime("%Y%m%d_%H%M%S")
    run_dir = os.path.join(cfg.output_dir, f"{timestamp}_{request.id}")
    os.makedirs(run_dir, exist_ok=True)

    print(
        f"Matching request {request.id} against {len(offers)} offers  "
        f"delegate={cfg.delegate}  radius={cfg.location.max_distance_km:g}km"
    )
    t0 = time.time()
    results = asyncio.run(_run(cfg, request, offers, run_dir))
    elapsed = time.time() - t0

    summary = summarise_matches(results)
    write_summary(summary, run_dir)
    write_matches_csv(results, run_dir)

    print(
        f"Done in {elapsed:.2f}s  |  {summary['matches']} matches  |  "
        f"{summary['trade_loops']} trade loops  |  best {summary['best_total']:.2f}"
    )
    _print_results(results, args.top)
    print(f"Results → {run_dir}")


if __name__ == "__main__":
    main()
