"""Isolate a JSON object embedded in free-form model output.

Free-text providers wrap their JSON in prose, markdown fences or trailing
commentary. Rather than guessing with several regexes, scan for each ``{``
that is not inside a string literal and let ``json.JSONDecoder.raw_decode``
decide whether a complete object starts there. The first decodable object
wins; if none exists a ``ParseFailure`` is raised.
"""

from __future__ import annotations

import json
from typing import Any

from cascade.errors import ParseFailure

_decoder = json.JSONDecoder()


def _candidate_starts(text: str) -> list[int]:
    """Return offsets of ``{`` characters outside JSON-style string literals.

    Prose quotes are not JSON strings, so string tracking only begins once a
    brace has been seen; an unmatched quote in leading prose cannot hide the
    payload.
    """
    starts: list[int] = []
    depth = 0
    in_string = False
    escaped = False
    for idx, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            starts.append(idx)
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
    # Unbalanced text leaves string tracking unreliable; try every brace.
    if depth > 0 or in_string:
        seen = set(starts)
        starts.extend(i for i, ch in enumerate(text) if ch == "{" and i not in seen)
        starts.sort()
    return starts


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first complete JSON object found in *text*.

    Raises:
        ParseFailure: If *text* is empty or contains no decodable object.
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseFailure(
            "Empty response: no JSON object to extract",
            hint="The provider returned no text.",
        )

    stripped = text.strip()
    if stripped.startswith("{"):
        try:
            value = json.loads(stripped)
        except ValueError:
            pass
        else:
            if isinstance(value, dict):
                return value

    for start in _candidate_starts(text):
        try:
            value, _end = _decoder.raw_decode(text, start)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value

    preview = stripped[:80].replace("\n", " ")
    raise ParseFailure(
        f"No JSON object found in response: {preview!r}",
        hint="Ask the model to return a single JSON object.",
    )


def coerce_structured(payload: Any) -> dict[str, Any]:
    """Normalize a structured-provider payload into a dict.

    Structured providers normally return a mapping; some SDKs hand back the
    function-call arguments as a JSON string instead.
    """
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        return extract_json_object(payload)
    if hasattr(payload, "items"):
        return dict(payload.items())
    raise ParseFailure(
        f"Structured provider returned {type(payload).__name__}, expected an object"
    )
