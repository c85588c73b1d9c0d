"""Event-level JSONL logging and the shared error-reporting side channel."""
from __future__ import annotations

import json
import logging
import os
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

from foodmatch.core.types import HistoryEntry, Match, TradeLoop

logger = logging.getLogger(__name__)


class EventLogger:
    """Writes structured matching events as newline-delimited JSON."""

    def __init__(self, run_dir: str):
        self.run_dir = run_dir
        os.makedirs(run_dir, exist_ok=True)
        self._events_path = os.path.join(run_dir, "events.jsonl")
        self._file = open(self._events_path, "a")

    @property
    def path(self) -> str:
        return self._events_path

    def _write(self, event: dict[str, Any]) -> None:
        event.setdefault("timestamp", time.time())
        self._file.write(json.dumps(event, default=str) + "\n")

    def log_match(self, match: Match, rank: int) -> None:
        self._write({
            "event": "match",
            "rank": rank,
            "match_id": match.id,
            "offer_id": match.offer.id,
            "request_id": match.request.id,
            "match_type": match.type,
            "scores": match.scores.to_dict(),
            "diagnostics": list(match.diagnostics),
        })

    def log_trade_loop(self, loop: TradeLoop, request_id: str) -> None:
        self._write({
            "event": "trade_loop",
            "request_id": request_id,
            "offer_ids": loop.offer_ids,
            "length": len(loop.chain),
        })

    def log_outcome(self, entry: HistoryEntry) -> None:
        self._write({
            "event": "outcome",
            "match_id": getattr(entry.match, "id", None),
            "success": entry.outcome.success,
            "rating": entry.outcome.rating,
            "feedback": entry.outcome.feedback,
            "recorded_at": entry.timestamp.isoformat(),
        })

    def log_error(self, diagnostic: Diagnostic) -> None:
        self._write({
            "event": "error",
            "where": diagnostic.where,
            "error_type": diagnostic.error_type,
            "message": diagnostic.message,
            "context": diagnostic.context,
            "timestamp": diagnostic.timestamp,
        })

    def close(self) -> None:
        self._file.flush()
        self._file.close()


@dataclass
class Diagnostic:
    where: str
    error_type: str
    message: str
    context: dict[str, Any]
    timestamp: float

    def summary(self) -> str:
        return f"{self.where}: {self.error_type}: {self.message}"


class ErrorReporter:
    """Collects absorbed failures so they are logged instead of lost.

    Keeps the most recent *capacity* diagnostics and mirrors each one to the
    attached EventLogger, if any.
    """

    def __init__(
        self,
        capacity: int = 100,
        event_logger: Optional[EventLogger] = None,
    ):
        self._recent: deque[Diagnostic] = deque(maxlen=capacity)
        self._event_logger = event_logger
        self._count = 0

    def report(self, exc: BaseException, where: str, **context: Any) -> Diagnostic:
        diagnostic = Diagnostic(
            where=where,
            error_type=type(exc).__name__,
            message=str(exc),
            context=context,
            timestamp=time.time(),
        )
        self._recent.append(diagnostic)
        self._count += 1
        logger.warning("%s failed: %s: %s %s", where, diagnostic.error_type, exc, context or "")
        if self._event_logger is not None:
            self._event_logger.log_error(diagnostic)
        return diagnostic

    @property
    def recent(self) -> list[Diagnostic]:
        return list(self._recent)

    @property
    def count(self) -> int:
        return self._count

    def clear(self) -> None:
        self._recent.clear()
        self._count = 0
