"""
JSON utilities for cleaning LLM responses.

Models routinely wrap their JSON in Markdown fences or chatty prose, so
every parser in the pipeline goes through these helpers first.
"""
import json
import math
from typing import Any, Dict, List, Optional


def clean_json_response(response: str) -> str:
    """Remove Markdown code fence markers and surrounding whitespace.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned text
    """
    if not response:
        return ""
    return response.replace("```json", "").replace("```", "").strip()


def _outer_span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start:end + 1]


def extract_json_object(response: str) -> Optional[str]:
    """Return the outermost ``{...}`` span of a response, if any."""
    return _outer_span(clean_json_response(response), "{", "}")


def parse_json_object(response: str) -> Optional[Dict[str, Any]]:
    """Parse the outermost JSON object in a model response.

    Returns None instead of raising when nothing usable is found.
    """
    candidate = extract_json_object(response)
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_json_array(response: str) -> Optional[List[Any]]:
    """Parse the outermost JSON array in a model response, or None."""
    candidate = _outer_span(clean_json_response(response), "[", "]")
    if candidate is None:
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def as_number(value: Any) -> Optional[float]:
    """Finite numeric JSON value as float; booleans, numeric strings, NaN and infinities are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    # json.loads accepts NaN and Infinity literals
    if not math.isfinite(number):
        return None
    return number


def as_text(value: Any) -> Optional[str]:
    """Stripped non-empty string, or None."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
