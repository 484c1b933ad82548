"""Pull a JSON object out of free-form model output."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional


_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass(frozen=True)
class JsonExtraction:
    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def _strip_code_fences(text: str | None) -> str:
    """Remove optional Markdown code fences from text."""

    if not text:
        return ""

    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = re.sub(r"^```[\w-]*\s*", "", stripped, count=1)
        if stripped.endswith("```"):
            stripped = stripped[: stripped.rfind("```")]

    return stripped.strip()


def _balanced_spans(text: str) -> Iterator[str]:
    """Yield every ``{...}`` span whose braces balance, outside of strings."""

    for start, char in enumerate(text):
        if char != "{":
            continue

        depth = 0
        in_string = False
        escaped = False
        for end in range(start, len(text)):
            current = text[end]
            if in_string:
                if escaped:
                    escaped = False
                elif current == "\\":
                    escaped = True
                elif current == '"':
                    in_string = False
                continue

            if current == '"':
                in_string = True
            elif current == "{":
                depth += 1
            elif current == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : end + 1]
                    break


def _parse_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: Optional[str]) -> JsonExtraction:
    """Parse the first JSON object found in ``text``.

    Tries a strict parse, then each brace-balanced span, then the greedy span
    from the first ``{`` to the last ``}``. Never raises.
    """

    cleaned = _strip_code_fences(text)
    if not cleaned:
        return JsonExtraction(ok=False, error="empty response")

    parsed = _parse_object(cleaned)
    if parsed is not None:
        return JsonExtraction(ok=True, value=parsed)

    for span in _balanced_spans(cleaned):
        parsed = _parse_object(span)
        if parsed is not None:
            return JsonExtraction(ok=True, value=parsed)

    first, last = cleaned.find("{"), cleaned.rfind("}")
    if first != -1 and last > first:
        parsed = _parse_object(cleaned[first : last + 1])
        if parsed is not None:
            return JsonExtraction(ok=True, value=parsed)

    return JsonExtraction(ok=False, error="no JSON object found in response")


def coerce_positive_int(value: Any) -> Optional[int]:
    """Read a positive whole number from a model-supplied field.

    Accepts ints, floats and strings such as ``"20 min"`` or ``"1"``. Returns
    ``None`` for booleans, non-numeric text and values below 1.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER.search(value)
        if match is None:
            return None
        number = float(match.group())
    else:
        return None

    if not math.isfinite(number) or number < 1:
        return None
    return int(number)
