"""Ollama LLM backend using only the Python standard library."""
from __future__ import annotations

import asyncio
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Optional

from foodmatch.core.config import LLMConfig

logger = logging.getLogger(__name__)


class OllamaLLMBackend:
    """HTTP client for Ollama's /api/generate endpoint.

    ``generate`` blocks; ``agenerate`` runs it on a worker thread so the
    matching engine can await classification calls.
    """

    def __init__(
        self,
        model: str = "qwen2.5:3b",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.2,
        max_tokens: int = 128,
        timeout_sec: float = 30.0,
        max_retries: int = 3,
        debug: bool = False,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.debug = debug
        self._call_count = 0

    @classmethod
    def from_config(cls, cfg: LLMConfig) -> OllamaLLMBackend:
        return cls(
            model=cfg.model,
            base_url=cfg.base_url,
            temperature=cfg.temperature,
            max_tokens=cfg.max_tokens,
            timeout_sec=cfg.timeout_sec,
            max_retries=cfg.max_retries,
            debug=cfg.debug,
        )

    def _post(self, payload: dict[str, Any], timeout: float) -> str:
        req = urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            if resp.status != 200:
                raise RuntimeError(f"Ollama returned HTTP {resp.status}")
            body = json.loads(resp.read().decode("utf-8"))
        return body.get("response", "")

    def generate(self, prompt: str, **overrides: Any) -> str:
        """Send a prompt to Ollama and return the generated text.

        Retries with exponential back-off on transient failures and raises
        ``ConnectionError`` once the retries are exhausted.
        """
        model = overrides.get("model", self.model)
        timeout = overrides.get("timeout_sec", self.timeout_sec)
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": overrides.get("temperature", self.temperature),
                "num_predict": overrides.get("max_tokens", self.max_tokens),
            },
        }

        if self.debug:
            logger.debug(
                "Ollama request #%d  model=%s  prompt_len=%d",
                self._call_count, model, len(prompt),
            )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                text = self._post(payload, timeout)
                self._call_count += 1
                if self.debug:
                    logger.debug("Ollama response (first 300 chars): %s", text[:300])
                return text
            except (
                urllib.error.URLError,
                OSError,
                RuntimeError,
                json.JSONDecodeError,
            ) as exc:
                last_error = exc
                if attempt + 1 == self.max_retries:
                    break
                wait = min(2 ** attempt, 16) + 0.1 * attempt
                logger.warning(
                    "Ollama request failed (attempt %d/%d): %s  – retrying in %.1fs",
                    attempt + 1, self.max_retries, exc, wait,
                )
                time.sleep(wait)

        raise ConnectionError(
            f"Ollama request failed after {self.max_retries} attempts: {last_error}"
        )

    async def agenerate(self, prompt: str, **overrides: Any) -> str:
        return await asyncio.to_thread(self.generate, prompt, **overrides)

    @property
    def call_count(self) -> int:
        return self._call_count
