"""Configuration loading and defaults."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import yaml


@dataclass
class LLMConfig:
    model: str = "qwen2.5:3b"
    temperature: float = 0.2
    max_tokens: int = 128
    timeout_sec: float = 30.0
    max_retries: int = 3
    base_url: str = "http://localhost:11434"
    memory_k: int = 5
    debug: bool = False


@dataclass
class WeightsConfig:
    location: float = 0.20
    urgency: float = 0.20
    value: float = 0.15
    trust: float = 0.15
    seasonal: float = 0.10
    nutritional: float = 0.10
    community: float = 0.05
    match_type: float = 0.05

    def as_dict(self) -> dict[str, float]:
        return {
            "location": self.location,
            "urgency": self.urgency,
            "value": self.value,
            "trust": self.trust,
            "seasonal": self.seasonal,
            "nutritional": self.nutritional,
            "community": self.community,
            "match_type": self.match_type,
        }


@dataclass
class LocationConfig:
    max_distance_km: float = 50.0      # pre-filter radius
    free_radius_km: float = 5.0
    penalty_per_km: float = 0.5
    max_penalty: float = 5.0
    zone_bonus: float = 2.0
    mesh_bonus: float = 1.0


@dataclass
class ScoringConfig:
    default_value: float = 5.0
    default_trust: float = 5.0
    rescale_unit_criteria: bool = False  # multiply 0-1 criteria by 10
    urgent_label_threshold: float = 8.0


@dataclass
class TradeLoopConfig:
    enabled: bool = True
    max_depth: int = 3
    threshold: float = 7.0
    max_pool: Optional[int] = None
    time_budget_sec: Optional[float] = None
    max_loops: Optional[int] = None


@dataclass
class TrustConfig:
    policy: str = "none"               # "none" | "rating"
    success_step: float = 0.5
    failure_step: float = 1.0
    rating_weight: float = 0.2


@dataclass
class EngineConfig:
    delegate: str = "none"             # "none" | "heuristic" | "ollama"
    output_dir: str = "outputs/matches"
    log_events: bool = False
    error_buffer: int = 100
    llm: LLMConfig = field(default_factory=LLMConfig)
    weights: WeightsConfig = field(default_factory=WeightsConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    trade_loops: TradeLoopConfig = field(default_factory=TradeLoopConfig)
    trust: TrustConfig = field(default_factory=TrustConfig)


def load_config(path: str) -> EngineConfig:
    """Load configuration from a YAML (or JSON) file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return config_from_dict(data)


_NESTED = {
    "llm": LLMConfig,
    "weights": WeightsConfig,
    "location": LocationConfig,
    "scoring": ScoringConfig,
    "trade_loops": TradeLoopConfig,
    "trust": TrustConfig,
}

_TOP_SCALARS = ("delegate", "output_dir", "log_events", "error_buffer")


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    cfg = EngineConfig()
    for key in _TOP_SCALARS:
        if key in data:
            setattr(cfg, key, data[key])
    for section in _NESTED:
        if section in data and isinstance(data[section], dict):
            obj = getattr(cfg, section)
            for k, v in data[section].items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    return cfg


_DELEGATES = ("none", "heuristic", "ollama")
_TRUST_POLICIES = ("none", "rating")


def validate_config(cfg: EngineConfig) -> list[str]:
    """Return warning messages for suspicious settings; empty when sane."""
    warnings = []

    total = sum(cfg.weights.as_dict().values())
    if abs(total - 1.0) > 1e-6:
        warnings.append(f"Criterion weights sum to {total:.3f}, expected 1.0")
    for name, weight in cfg.weights.as_dict().items():
        if weight < 0:
            warnings.append(f"Negative weight for {name}: {weight}")

    if cfg.location.max_distance_km <= 0:
        warnings.append(
            f"max_distance_km={cfg.location.max_distance_km} filters out every offer"
        )
    if cfg.trade_loops.max_depth < 1 and cfg.trade_loops.enabled:
        warnings.append("trade_loops.max_depth < 1 disables loop search")

    if cfg.delegate not in _DELEGATES:
        warnings.append(f"Unknown delegate '{cfg.delegate}' (expected one of {_DELEGATES})")
    if cfg.trust.policy not in _TRUST_POLICIES:
        warnings.append(
            f"Unknown trust policy '{cfg.trust.policy}' (expected one of {_TRUST_POLICIES})"
        )
    return warnings
