"""Best-effort recovery of a JSON object from free-form completion text.

This is a heuristic, not a parser: it strips markdown fences and greedily takes
the outermost ``{...}`` span. Truncated or malformed JSON is detected by the
final ``json.loads`` and reported as a SchemaError, never repaired.
"""
import json
import re
import logging

from errors import SchemaError

logger = logging.getLogger("extractor")

FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", flags=re.S)
FENCE_MARKER_RE = re.compile(r"```(?:json|JSON)?")
OBJECT_RE = re.compile(r"\{.*\}", flags=re.S)


def _parses(text: str) -> bool:
    try:
        json.loads(text)
        return True
    except (json.JSONDecodeError, TypeError):
        return False


def extract_json(text: str) -> str:
    cleaned = (text or "").strip()
    if _parses(cleaned):
        return cleaned

    m = FENCE_RE.search(cleaned)
    if m and _parses(m.group(1).strip()):
        return m.group(1).strip()

    cleaned = FENCE_MARKER_RE.sub("", cleaned).strip()
    m = OBJECT_RE.search(cleaned)
    if m:
        return m.group(0)
    return cleaned


def parse_json_object(text: str) -> dict:
    candidate = extract_json(text)
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("Completion did not contain parseable JSON: %s; raw output: %.500s", e, text)
        raise SchemaError(f"Failed to parse JSON from completion: {e.msg}")
    if not isinstance(obj, dict):
        raise SchemaError(f"Expected a JSON object from completion, got {type(obj).__name__}")
    return obj
