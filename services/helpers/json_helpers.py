import json
import re
from typing import Any, Dict

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def strip_code_fences(s: str) -> str:
    """Drop every markdown fence the model wrapped its JSON in."""
    return _FENCE_RE.sub("", s or "").strip()


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of model output.
    Handles code fences, trailing commas, and JSON double-encoded as a string.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ValueError("Empty LLM response")

    try:
        obj = json.loads(cleaned)
    except json.JSONDecodeError:
        obj = json.loads(_TRAILING_COMMA_RE.sub(r"\1", cleaned))

    if isinstance(obj, str):
        obj = json.loads(obj)
    if not isinstance(obj, dict):
        raise ValueError("Expected a JSON object")
    return obj
