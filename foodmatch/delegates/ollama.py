"""LLM-backed delegate with a lightweight outcome memory."""
from __future__ import annotations

import logging
from typing import Any, Optional

from foodmatch.core.types import Listing, MatchOutcome, Urgency
from foodmatch.delegates.base import AIDelegate
from foodmatch.delegates.llm_utils import call_llm_and_parse
from foodmatch.llm.backend import OllamaLLMBackend
from foodmatch.llm.parser import validate_urgency_json, validate_value_json
from foodmatch.llm.prompts import (
    build_memory_context,
    build_urgency_prompt,
    build_value_prompt,
)

logger = logging.getLogger(__name__)


class OutcomeMemory:
    """Stores and retrieves summaries of past trade outcomes."""

    def __init__(self, k: int = 5, capacity: int = 500):
        self.memories: list[dict] = []
        self.k = k
        self.capacity = capacity

    def add(self, summary: dict) -> None:
        self.memories.append(summary)
        if len(self.memories) > self.capacity:
            del self.memories[: len(self.memories) - self.capacity]

    def retrieve(self, item_type: Optional[str] = None) -> list[dict]:
        """Return up to *k* memories, preferring the same item type."""
        if not self.memories:
            return []
        if item_type:
            same = [
                m for m in self.memories
                if item_type in (m.get("offer_type"), m.get("request_type"))
            ]
            if same:
                return same[-self.k :][::-1]
        return self.memories[-self.k :][::-1]


class OllamaDelegate(AIDelegate):
    """Classifies urgency and estimates value with a local Ollama model."""

    def __init__(
        self,
        backend: OllamaLLMBackend,
        memory: Optional[OutcomeMemory] = None,
        memory_k: int = 5,
        default_value: float = 5.0,
    ):
        self._backend = backend
        self._memory = memory or OutcomeMemory(k=memory_k)
        self.default_value = default_value

    @property
    def delegate_type(self) -> str:
        return "ollama"

    @property
    def memory(self) -> OutcomeMemory:
        return self._memory

    async def classify_urgency(self, description: str) -> str:
        if not description or not description.strip():
            return Urgency.NORMAL.value
        parsed = await call_llm_and_parse(
            self._backend,
            build_urgency_prompt(description),
            validate_urgency_json,
            "urgency classification",
        )
        if parsed is None:
            return Urgency.NORMAL.value
        return parsed["urgency"]

    async def estimate_value(self, item: Listing) -> float:
        memory_text = build_memory_context(self._memory.retrieve(item.type))
        parsed = await call_llm_and_parse(
            self._backend,
            build_value_prompt(item, memory_text),
            validate_value_json,
            "value estimation",
        )
        if parsed is None:
            if item.user_estimated_value is not None:
                return item.user_estimated_value
            return self.default_value
        return parsed["estimated_value"]

    async def learn_from_outcome(self, match: Any, outcome: MatchOutcome) -> None:
        offer = getattr(match, "offer", None)
        request = getattr(match, "request", None)
        scores = getattr(match, "scores", None)
        self._memory.add({
            "match_id": getattr(match, "id", None),
            "offer_type": getattr(offer, "type", None),
            "request_type": getattr(request, "type", None),
            "success": outcome.success,
            "rating": outcome.rating,
            "value_score": round(scores.value, 2) if scores is not None else None,
        })
        logger.debug("Stored outcome for match %s", getattr(match, "id", "?"))
