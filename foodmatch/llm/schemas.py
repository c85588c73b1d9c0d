"""JSON schemas and format instructions for delegate LLM outputs."""

URGENCY_SCHEMA = """\
You MUST respond with ONLY a JSON object (no markdown, no extra text) matching this schema:
{
  "urgency": "critical" | "high" | "normal" | "optional",
  "reason": "<one short sentence>"
}
Rules:
- critical: someone will go without food today (emergency, no food at all)
- high: needed within a day or two
- normal: a regular need with no stated deadline
- optional: nice to have, no rush"""

VALUE_SCHEMA = """\
You MUST respond with ONLY a JSON object (no markdown, no extra text) matching this schema:
{
  "estimated_value": <positive number>,
  "reason": "<one short sentence>"
}
Rules:
- estimated_value is the approximate retail value of the listed food in dollars
- estimated_value must be a number greater than zero"""

FORMAT_ERROR_PROMPT = """\
Your previous response was NOT valid JSON. You MUST respond with ONLY a valid JSON object.
Do NOT wrap it in markdown code blocks. Do NOT include any text before or after the JSON."""
