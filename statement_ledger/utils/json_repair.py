"""
Tolerant JSON parsing for model responses.

Responses may be wrapped in markdown fences or cut off at the output
token limit. parse_json_response() never raises: anything that cannot
be recovered comes back as None.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```\s*$")
_TRAILING_COMMA = re.compile(r",\s*$")
_TRAILING_WORD = re.compile(r":\s*([A-Za-z]+)$")
_DANGLING_KEY = re.compile(r"\"\s*:\s*$")

_KEYWORDS = ("true", "false", "null")
_CLOSERS = {"{": "}", "[": "]"}


def clean_json_text(text: Optional[str]) -> str:
    """Strip markdown code fences around a JSON payload."""
    if not text:
        return ""
    cleaned = text.strip()
    cleaned = _FENCE_START.sub("", cleaned)
    cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


def _has_open_string(text: str) -> bool:
    quote_count = 0
    escape = False
    for char in text:
        if char == "\\" and not escape:
            escape = True
            continue
        if char == '"' and not escape:
            quote_count += 1
        escape = False
    return quote_count % 2 != 0


def _complete_keyword(text: str) -> str:
    match = _TRAILING_WORD.search(text)
    if not match:
        return text

    fragment = match.group(1)
    lowered = fragment.lower()
    for keyword in _KEYWORDS:
        if keyword.startswith(lowered):
            return text[:match.start(1)] + keyword
    return text


def _pending_closers(text: str) -> str:
    stack = []
    in_string = False
    escape = False

    for char in text:
        if char == "\\" and not escape:
            escape = True
            continue
        if char == '"' and not escape:
            in_string = not in_string
        escape = False

        if in_string:
            continue
        if char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]") and stack and stack[-1] == char:
            stack.pop()

    return "".join(reversed(stack))


def repair_json(text: str) -> str:
    """
    Best-effort repair of truncated JSON text.

    Closes an unterminated string, drops a trailing comma, completes a
    cut-off true/false/null, fills a dangling key with null and closes
    any open objects/arrays in last-in-first-out order.
    """
    repaired = text.strip()
    if not repaired:
        return "{}"

    if _has_open_string(repaired):
        repaired += '"'

    repaired = _TRAILING_COMMA.sub("", repaired, count=1)
    repaired = _complete_keyword(repaired)

    if _DANGLING_KEY.search(repaired):
        repaired += " null"

    return repaired + _pending_closers(repaired)


def parse_json_response(text: Optional[str]) -> Optional[Any]:
    """Parse a model response, repairing it if needed."""
    cleaned = clean_json_text(text)
    if not cleaned:
        return None

    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, RecursionError):
        pass

    try:
        return json.loads(repair_json(cleaned))
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"JSON repair failed ({len(cleaned)} chars): {e}")
        return None
