"""Robust JSON extraction and validation for delegate LLM outputs."""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from foodmatch.core.types import Urgency


def extract_json(text: str) -> Optional[dict[str, Any]]:
    """Extract a JSON object from *text* that may contain extra content.

    Tries, in order:
      1. Direct ``json.loads``
      2. Content inside markdown code fences
      3. First ``{ … }`` substring
      4. Heuristic repair (single quotes, trailing commas, …)
    """
    text = (text or "").strip()

    try:
        obj = json.loads(text)
        if isinstance(obj, dict):
            return obj
    except json.JSONDecodeError:
        pass

    for m in re.finditer(r"```(?:json)?\s*\n?(.*?)\n?\s*```", text, re.DOTALL):
        try:
            obj = json.loads(m.group(1).strip())
            if isinstance(obj, dict):
                return obj
        except json.JSONDecodeError:
            continue

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidate = text[start : end + 1]
        try:
            obj = json.loads(candidate)
            if isinstance(obj, dict):
                return obj
        except json.JSONDecodeError:
            pass
        return _attempt_repair(candidate)

    return None


def _attempt_repair(text: str) -> Optional[dict[str, Any]]:
    """Best-effort fixups for common LLM JSON errors."""
    s = text.replace("'", '"')
    s = re.sub(r",\s*}", "}", s)
    s = re.sub(r",\s*]", "]", s)
    s = re.sub(r'(?<=[{,])\s*(\w+)\s*:', r' "\1":', s)
    try:
        obj = json.loads(s)
        if isinstance(obj, dict):
            return obj
    except json.JSONDecodeError:
        pass
    return None


# ── schema-level validation ─────────────────────────────────────────────────

_VALID_URGENCY = {u.value for u in Urgency}


def validate_urgency_json(obj: dict[str, Any]) -> tuple[bool, str]:
    """Check an urgency classification; normalises the label in place."""
    if "urgency" not in obj:
        return False, "Missing required field: urgency"
    label = str(obj["urgency"]).strip().lower()
    if label not in _VALID_URGENCY:
        return False, f"Invalid urgency '{obj['urgency']}'. Must be one of {_VALID_URGENCY}"
    obj["urgency"] = label
    return True, ""


def validate_value_json(obj: dict[str, Any]) -> tuple[bool, str]:
    """Check a value estimate; coerces numeric strings in place."""
    if "estimated_value" not in obj:
        return False, "Missing required field: estimated_value"
    value = obj["estimated_value"]
    if isinstance(value, str):
        try:
            value = float(value.strip().lstrip("$"))
        except ValueError:
            return False, f"estimated_value must be numeric, got {value!r}"
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, f"estimated_value must be numeric, got {type(value).__name__}"
    if value <= 0:
        return False, "estimated_value must be positive"
    obj["estimated_value"] = float(value)
    return True, ""
