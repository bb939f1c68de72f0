"""Exception hierarchy and failure taxonomy for Cascade."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cascade.validation import ValidationReport


class FailureKind(str, Enum):
    """Outcome classes recorded for a single generation attempt."""

    TIMEOUT = "timeout"
    PARSE_FAILURE = "parse_failure"
    VALIDATION_FAILURE = "validation_failure"
    LOW_CONFIDENCE = "low_confidence"
    AUTHENTICATION_FAILURE = "authentication_failure"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    TRANSIENT_NETWORK_ERROR = "transient_network_error"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"

    @property
    def retryable(self) -> bool:
        """Whether the tier executor keeps spending its budget after this kind."""
        return self not in (
            FailureKind.AUTHENTICATION_FAILURE,
            FailureKind.PROVIDER_UNAVAILABLE,
        )


class CascadeError(Exception):
    """Base exception for all Cascade errors."""

    kind: FailureKind = FailureKind.PROVIDER_ERROR

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CascadeError):
    """Configuration or request validation failed."""


class ParseFailure(CascadeError):
    """No structured payload could be isolated from a provider response."""

    kind = FailureKind.PARSE_FAILURE


class ValidationFailure(CascadeError):
    """A parsed payload does not satisfy the request schema."""

    kind = FailureKind.VALIDATION_FAILURE

    def __init__(
        self,
        message: str,
        *,
        report: ValidationReport,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.report = report


class LowConfidence(CascadeError):
    """A structurally valid payload scored below the quality threshold."""

    kind = FailureKind.LOW_CONFIDENCE

    def __init__(
        self,
        message: str,
        *,
        confidence: float,
        threshold: float,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.confidence = confidence
        self.threshold = threshold


class APIError(CascadeError):
    """Provider call failed.

    Providers attach retry metadata so the tier executor can decide between
    retrying and fast-failing without brittle substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider
        self.phase = phase


class GenerationTimeout(APIError):
    """A provider call did not finish before its deadline."""

    kind = FailureKind.TIMEOUT


class AuthenticationError(APIError):
    """Credentials were rejected (HTTP 401/403). Never retried."""

    kind = FailureKind.AUTHENTICATION_FAILURE


class TransientNetworkError(APIError):
    """Transport-level failure (connection reset, DNS, 5xx)."""

    kind = FailureKind.TRANSIENT_NETWORK_ERROR


class RateLimitError(TransientNetworkError):
    """Rate limit exceeded (HTTP 429)."""

    kind = FailureKind.RATE_LIMITED


class ProviderUnavailable(APIError):
    """A provider is not usable (missing/invalid credentials, failed probe)."""

    kind = FailureKind.PROVIDER_UNAVAILABLE


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, once each."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
