"""Parse-validate-retry pipeline shared by the LLM delegate calls."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from foodmatch.llm.parser import extract_json
from foodmatch.llm.schemas import FORMAT_ERROR_PROMPT

if TYPE_CHECKING:
    from foodmatch.llm.backend import OllamaLLMBackend

logger = logging.getLogger(__name__)

Validator = Callable[[dict[str, Any]], tuple[bool, str]]


def _parse(raw: str, validate: Validator) -> tuple[Optional[dict], str]:
    parsed = extract_json(raw)
    if parsed is None:
        return None, "could not extract JSON"
    valid, reason = validate(parsed)
    if not valid:
        return None, reason
    return parsed, ""


async def call_llm_and_parse(
    backend: OllamaLLMBackend,
    prompt: str,
    validate: Validator,
    task: str,
) -> Optional[dict[str, Any]]:
    """Call the LLM, parse JSON, retry once with a format nudge.

    Returns the validated object, or ``None`` when the backend is unreachable
    or both attempts produced unusable output. Callers supply the fallback.
    """
    try:
        raw = await backend.agenerate(prompt)
    except (ConnectionError, OSError, RuntimeError) as exc:
        logger.error("LLM backend error during %s: %s – using fallback", task, exc)
        return None

    parsed, reason = _parse(raw, validate)
    if parsed is not None:
        return parsed
    logger.warning("%s: %s", task, reason)

    try:
        raw = await backend.agenerate(prompt + "\n\n" + FORMAT_ERROR_PROMPT)
    except (ConnectionError, OSError, RuntimeError) as exc:
        logger.error("LLM backend error on %s retry: %s – using fallback", task, exc)
        return None

    parsed, reason = _parse(raw, validate)
    if parsed is not None:
        return parsed

    logger.error("%s: LLM failed to produce valid JSON after retry (%s)", task, reason)
    return None
