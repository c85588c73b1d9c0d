"""Build the configured AI delegate."""
from __future__ import annotations

from typing import Optional

from foodmatch.core.config import EngineConfig
from foodmatch.delegates.base import AIDelegate
from foodmatch.delegates.heuristic import HeuristicDelegate
from foodmatch.delegates.ollama import OllamaDelegate
from foodmatch.llm.backend import OllamaLLMBackend


def build_delegate(cfg: EngineConfig) -> Optional[AIDelegate]:
    kind = cfg.delegate
    if kind in (None, "none"):
        return None
    if kind == "heuristic":
        return HeuristicDelegate(default_value=cfg.scoring.default_value)
    if kind == "ollama":
        return OllamaDelegate(
            OllamaLLMBackend.from_config(cfg.llm),
            memory_k=cfg.llm.memory_k,
            default_value=cfg.scoring.default_value,
        )
    raise ValueError(f"Unknown delegate type: {kind}")
