"""Attempt classification and inter-attempt backoff.

Every exception escaping a provider call is mapped onto exactly one
``FailureKind`` before the tier executor decides whether to spend another
attempt. Decisions use exception types and status codes, never message text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random

import httpx

from cascade._http import AUTH_STATUS_CODES, RETRYABLE_STATUS_CODES, status_code_of
from cascade.errors import (
    APIError,
    AuthenticationError,
    CascadeError,
    GenerationTimeout,
    TransientNetworkError,
    _walk_exception_chain,
)

_TIMEOUT_TYPES = (TimeoutError, httpx.TimeoutException)
# OSError covers ConnectionError and socket-level failures.
_TRANSPORT_TYPES = (httpx.TransportError, OSError)


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay applied between failed attempts inside one tier.

    The default is no delay: the tier budget is already bounded by
    ``max_retries`` and ``timeout_ms``. A ``retry_after_s`` hint from the
    provider is still honoured, capped by ``max_delay_s``.
    """

    initial_delay_s: float = 0.0
    backoff_multiplier: float = 2.0
    max_delay_s: float = 5.0
    #: Full jitter: each delay is drawn uniformly from [0, computed delay].
    jitter: bool = True

    def __post_init__(self) -> None:
        """Reject values that would make the delay negative or non-increasing."""
        if self.initial_delay_s < 0:
            raise ValueError("BackoffPolicy.initial_delay_s must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("BackoffPolicy.backoff_multiplier must be > 0")
        if self.max_delay_s < 0:
            raise ValueError("BackoffPolicy.max_delay_s must be >= 0")


def classify_exception(exc: BaseException) -> CascadeError:
    """Map an arbitrary provider exception onto the failure taxonomy.

    - Cascade errors are returned unchanged.
    - Cancellation is re-raised, never classified.
    - HTTP 401/403 become ``AuthenticationError`` (the tier fast-fails).
    - Timeouts become ``GenerationTimeout``.
    - Transport failures and retryable statuses become ``TransientNetworkError``.
    - Anything else is a retryable ``APIError``.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc
    if isinstance(exc, CascadeError):
        return exc

    status_code = status_code_of(exc)
    message = str(exc) or type(exc).__name__
    chain = tuple(_walk_exception_chain(exc))

    if status_code in AUTH_STATUS_CODES:
        return AuthenticationError(message, status_code=status_code, retryable=False)
    if any(isinstance(e, _TIMEOUT_TYPES) for e in chain):
        return GenerationTimeout(message, status_code=status_code, retryable=True)
    if status_code in RETRYABLE_STATUS_CODES or any(
        isinstance(e, _TRANSPORT_TYPES) for e in chain
    ):
        return TransientNetworkError(message, status_code=status_code, retryable=True)
    return APIError(message, status_code=status_code, retryable=True)


def compute_backoff_delay(
    policy: BackoffPolicy,
    *,
    retry_index: int,
    error: BaseException | None = None,
) -> float:
    """Return the sleep before retry number *retry_index* (1-based)."""
    delay = min(
        policy.max_delay_s,
        policy.initial_delay_s * policy.backoff_multiplier ** max(0, retry_index - 1),
    )
    if delay > 0 and policy.jitter:
        delay = random.uniform(0.0, delay)  # noqa: S311

    hinted = error.retry_after_s if isinstance(error, APIError) else None
    if isinstance(hinted, (int, float)) and hinted >= 0:
        delay = max(delay, min(float(hinted), policy.max_delay_s))
    return max(0.0, delay)
