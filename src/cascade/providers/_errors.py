"""Mapping of provider SDK exceptions onto the Cascade failure taxonomy.

Every provider funnels SDK failures through ``wrap_provider_error`` so the
tier executor only ever sees Cascade errors carrying status, retry hint,
provider and phase.
"""

from __future__ import annotations

import asyncio

import httpx

from cascade._http import (
    AUTH_STATUS_CODES,
    RETRYABLE_STATUS_CODES,
    retry_after_of,
    status_code_of,
)
from cascade.errors import (
    APIError,
    AuthenticationError,
    CascadeError,
    GenerationTimeout,
    RateLimitError,
    TransientNetworkError,
    _walk_exception_chain,
)

_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def _auth_hint(provider: str) -> str:
    env_var = _KEY_ENV_VARS.get(provider)
    if env_var is None:
        return "Check the provider credentials and their permissions."
    return f"Set {env_var} (or pass the key through Config) and check its permissions."


def _rejects_key(status_code: int | None, text: str) -> bool:
    # Gemini answers 400, not 401, for a malformed key.
    lowered = text.lower()
    return status_code == 400 and ("api key" in lowered or "api_key" in lowered)


def _classify(
    exc: BaseException, status_code: int | None, text: str
) -> tuple[type[APIError], bool]:
    """Pick the error class and whether the tier may spend another attempt."""
    chain = tuple(_walk_exception_chain(exc))
    if status_code in AUTH_STATUS_CODES or _rejects_key(status_code, text):
        return AuthenticationError, False
    if status_code == 429:
        return RateLimitError, True
    if any(isinstance(e, (httpx.TimeoutException, TimeoutError)) for e in chain):
        return GenerationTimeout, True
    if status_code in RETRYABLE_STATUS_CODES or any(
        isinstance(e, httpx.RequestError) for e in chain
    ):
        return TransientNetworkError, True
    return APIError, True


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> CascadeError:
    """Return the Cascade error for an SDK exception raised during *phase*.

    Cancellation is re-raised untouched. Errors that are already Cascade
    errors only gain the missing provider, phase and hint.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, CascadeError):
        if isinstance(exc, APIError):
            exc.provider = exc.provider or provider
            exc.phase = exc.phase or phase
        exc.hint = exc.hint or hint
        return exc

    status_code = status_code_of(exc)
    retry_after_s = retry_after_of(exc)
    text = str(exc)
    err_cls, retryable = _classify(exc, status_code, text)
    if err_cls is AuthenticationError:
        hint = hint or _auth_hint(provider)

    summary = message or f"{provider} {phase} failed"
    if status_code is not None:
        summary += f" (HTTP {status_code})"
    if text:
        summary += f": {text}"

    return err_cls(
        summary,
        hint=hint,
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        provider=provider,
        phase=phase,
    )
