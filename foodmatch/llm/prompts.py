"""Prompt templates for the LLM-backed delegate."""
from __future__ import annotations

from foodmatch.core.types import Listing
from foodmatch.llm.schemas import URGENCY_SCHEMA, VALUE_SCHEMA


def build_urgency_prompt(description: str) -> str:
    return (
        "You triage requests on a community food-sharing platform.\n\n"
        f"Request: \"{description.strip()}\"\n\n"
        "Classify how urgently this person needs food.\n\n"
        f"{URGENCY_SCHEMA}\n\n"
        "Respond with ONLY the JSON object."
    )


def _describe_item(item: Listing) -> str:
    lines = [f"Type: {item.type or 'unspecified'}"]
    if item.description:
        lines.append(f"Description: {item.description.strip()}")
    if item.quantity is not None:
        lines.append(f"Quantity: {item.quantity:g}")
    if item.user_estimated_value is not None:
        lines.append(f"Owner's own estimate: ${item.user_estimated_value:.2f}")
    return "\n".join(lines)


def build_value_prompt(item: Listing, memory_text: str = "") -> str:
    prompt = (
        "You estimate the value of food listed on a community sharing "
        "platform so that fair trades can be suggested.\n\n"
        f"{_describe_item(item)}\n\n"
        f"{VALUE_SCHEMA}\n\n"
        "Respond with ONLY the JSON object."
    )
    return (memory_text + "\n" + prompt) if memory_text else prompt


def build_memory_context(memories: list[dict]) -> str:
    """Format past trade outcomes for prompt injection."""
    if not memories:
        return ""
    lines = ["Recent trades on the platform (most relevant first):"]
    for i, mem in enumerate(memories, 1):
        outcome = "COMPLETED" if mem.get("success") else "FAILED"
        rating = mem.get("rating")
        rating_str = f" | Rating: {rating:g}/5" if rating is not None else ""
        lines.append(
            f"  {i}. {mem.get('offer_type', '?')} for {mem.get('request_type', '?')} | "
            f"Outcome: {outcome}{rating_str} | "
            f"Value score: {mem.get('value_score', '?')}"
        )
    lines.append("")
    return "\n".join(lines)
