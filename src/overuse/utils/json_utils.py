"""JSON extraction from model output (fenced blocks, surrounding prose)."""

import json
import re
from typing import Any

_FENCED = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_BARE = re.compile(r"(\{[\s\S]*\})")


def parse_json_from_text(text: str) -> dict[str, Any] | None:
    """Return the first JSON object found in text, or None."""
    if not text or not text.strip():
        return None
    text = text.strip()
    for pattern in (_FENCED, _BARE):
        m = pattern.search(text)
        if not m:
            continue
        try:
            parsed = json.loads(m.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def parse_json_from_response(text: str, default_raw: bool = True) -> dict[str, Any]:
    """
    Extract a single JSON object from model response text. Used by LLM invoke_structured.

    Returns the parsed dict, or {"raw": text} ({} when default_raw is False) if none found.
    """
    text = (text or "").strip()
    parsed = parse_json_from_text(text)
    if parsed is not None:
        return parsed
    return {"raw": text} if default_raw else {}


def coerce_int_list(value: Any) -> list[int]:
    """Read a list of integer indices from loosely-typed JSON (ints, numeric strings, a single int)."""
    if value is None:
        return []
    if isinstance(value, (int, str)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: list[int] = []
    for item in value:
        if isinstance(item, bool):
            continue
        try:
            out.append(int(item))
        except (TypeError, ValueError):
            continue
    return out
