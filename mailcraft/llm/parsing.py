from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(?P<body>.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE_RE.match(text)
    if match:
        return match.group("body").strip()
    return text


def extract_first_json_object(text: str) -> Dict[str, Any]:
    """
    Extract and parse the first top-level JSON object from an arbitrary text blob.

    Models occasionally wrap JSON in preambles or markdown fences even when a JSON
    response format is requested.
    """

    if not isinstance(text, str):
        raise ValueError("Input text must be a string")
    raw = _strip_code_fence(text.strip())
    if not raw:
        raise ValueError("Input text is empty")

    start: int | None = None
    depth = 0
    in_string = False
    escape = False

    for i, ch in enumerate(raw):
        if start is None:
            if ch == "{":
                start = i
                depth = 1
                in_string = False
                escape = False
            continue

        if in_string:
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue
        if ch == "{":
            depth += 1
            continue
        if ch == "}":
            depth -= 1
            if depth == 0:
                candidate = raw[start : i + 1].strip()
                parsed = json.loads(candidate)
                if not isinstance(parsed, dict):
                    raise ValueError("Extracted JSON is not an object")
                return parsed

    raise ValueError("No JSON object found in text")


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Lenient variant: returns None instead of raising when nothing parses."""
    if not text:
        return None
    try:
        return extract_first_json_object(text)
    except ValueError:
        # json.JSONDecodeError is a ValueError subclass.
        return None
