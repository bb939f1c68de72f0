"""HTTP status and retry-hint helpers shared by providers and the tier executor."""

from __future__ import annotations

import re
from typing import Any

from cascade.errors import _walk_exception_chain

# Retryable status codes shared by provider mapping and attempt classification.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

# Status codes that mean the credentials themselves are the problem.
AUTH_STATUS_CODES: frozenset[int] = frozenset({401, 403})

# protobuf Duration as serialized in JSON ("8s", "0.5s").
_DURATION = re.compile(r"(\d+(?:\.\d+)?)s")


def _as_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
        return value
    return None


def status_code_of(exc: BaseException) -> int | None:
    """Return the first HTTP status carried by *exc* or anything it chains to.

    SDKs disagree on where the status lives: ``status_code`` (openai,
    anthropic), ``status`` or ``code`` on google-genai errors, or only on the
    attached ``response``.
    """
    for err in _walk_exception_chain(exc):
        response = getattr(err, "response", None)
        for value in (
            getattr(err, "status_code", None),
            getattr(err, "status", None),
            getattr(err, "code", None),
            getattr(response, "status_code", None),
        ):
            status = _as_status(value)
            if status is not None:
                return status
    return None


def _retry_after_header(response: Any) -> float | None:
    getter = getattr(getattr(response, "headers", None), "get", None)
    if not callable(getter):
        return None
    raw = getter("Retry-After")
    if not isinstance(raw, str):
        return None
    try:
        seconds = float(raw.strip())
    except ValueError:
        # HTTP-date form; not worth honouring for sub-minute budgets.
        return None
    return seconds if seconds >= 0 else None


def _google_retry_delay(err: BaseException) -> float | None:
    """Read ``RetryInfo.retryDelay`` from a google-genai error body.

    ``ClientError.details`` holds the parsed JSON body::

        {"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "8s"}]}}
    """
    details = getattr(err, "details", None)
    body = details.get("error") if isinstance(details, dict) else None
    entries = body.get("details") if isinstance(body, dict) else None
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if "RetryInfo" not in str(entry.get("@type", "")):
            continue
        match = _DURATION.fullmatch(str(entry.get("retryDelay", "")))
        if match:
            return float(match.group(1))
    return None


def retry_after_of(exc: BaseException) -> float | None:
    """Return the server-requested delay before retrying, in seconds."""
    for err in _walk_exception_chain(exc):
        explicit = getattr(err, "retry_after", None)
        if isinstance(explicit, (int, float)) and not isinstance(explicit, bool):
            if explicit >= 0:
                return float(explicit)
        delay = _retry_after_header(getattr(err, "response", None))
        if delay is None:
            delay = _google_retry_delay(err)
        if delay is not None:
            return delay
    return None
