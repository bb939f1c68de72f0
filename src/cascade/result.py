"""Generation results and per-attempt diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from cascade.errors import FailureKind, ProviderUnavailable, ValidationFailure
from cascade.validation import ValidationReport

ModelT = TypeVar("ModelT", bound=BaseModel)


class Tier(str, Enum):
    """Stage of the fallback chain that produced a result."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class AttemptRecord:
    """One provider attempt (or tier skip) as seen by the orchestrator."""

    tier: Tier
    #: 1-based attempt number within the tier; 0 for a skipped tier.
    attempt: int
    outcome: FailureKind | Literal["ok"]
    detail: str = ""
    confidence: float | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether this attempt produced the accepted payload."""
        return self.outcome == "ok"


@dataclass(frozen=True)
class GenerationResult:
    """Final result of one orchestrator call.

    ``success`` is always True: the deterministic tier cannot fail. How far
    escalation went is visible through ``provider``, ``confidence``,
    ``degraded`` and ``trace``.
    """

    data: dict[str, Any]
    provider: Tier
    attempts: int
    confidence: float
    processing_time_ms: int
    success: bool = True
    trace: tuple[AttemptRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Enforce the result invariants."""
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.processing_time_ms < 0:
            raise ValueError("processing_time_ms must be >= 0")

    @property
    def degraded(self) -> bool:
        """True when only the deterministic fallback could answer."""
        return self.provider is Tier.FALLBACK

    def raise_if_degraded(self) -> GenerationResult:
        """Return self, or raise when no provider produced the payload.

        For callers that treat "only the static fallback was available" as a
        failure rather than a low-confidence success.
        """
        if self.degraded:
            summary = ", ".join(
                sorted({str(r.outcome.value) for r in self.trace if not r.ok})
            )
            raise ProviderUnavailable(
                "No provider produced a usable payload; deterministic fallback used",
                hint=f"Attempt outcomes: {summary}" if summary else None,
            )
        return self

    def as_model(self, model: type[ModelT]) -> ModelT:
        """Validate ``data`` into the Pydantic *model*.

        Raises:
            ValidationFailure: If the payload does not fit *model*.
        """
        try:
            return model.model_validate(self.data)
        except ValidationError as e:
            missing = tuple(
                str(err["loc"][0])
                for err in e.errors()
                if err["type"] == "missing" and err["loc"]
            )
            raise ValidationFailure(
                f"Payload does not fit {model.__name__}: {e.error_count()} error(s)",
                report=ValidationReport(missing_fields=missing),
                hint="Check result.provider; fallback payloads are generic.",
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase envelope used by route handlers."""
        return {
            "success": self.success,
            "data": self.data,
            "provider": self.provider.value,
            "attempts": self.attempts,
            "confidence": self.confidence,
            "processingTime": self.processing_time_ms,
        }
