"""Tier executor: one provider, one bounded attempt loop.

Primary and secondary tiers share this executor; only the provider handle
and the tier label differ. Each attempt:

1. builds the enhanced prompt,
2. calls the provider under a deadline (the call is cancelled on expiry),
3. parses a structured payload (directly, or out of free text),
4. sanitizes, then validates,
5. scores, and accepts when the score reaches the quality threshold.

Failures are retried until the budget is spent, unless the error is marked
non-retryable (its ``FailureKind`` or ``APIError.retryable`` says so). Those
abandon the tier immediately; in practice that means authentication failures.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import time
from typing import TYPE_CHECKING, Any

from cascade.errors import (
    APIError,
    CascadeError,
    ConfigurationError,
    GenerationTimeout,
    LowConfidence,
    ValidationFailure,
)
from cascade.extraction import coerce_structured, extract_json_object
from cascade.prompts import build_enhanced_prompt
from cascade.providers.base import StructuredProvider, TextProvider
from cascade.result import AttemptRecord, Tier
from cascade.retry import BackoffPolicy, classify_exception, compute_backoff_delay
from cascade.sanitize import sanitize_with_report
from cascade.scoring import score
from cascade.validation import validate

if TYPE_CHECKING:
    from cascade.request import GenerationRequest

log = logging.getLogger(__name__)

_TEXT_TEMPERATURE = 0.3
_TEXT_MAX_TOKENS = 2000


@dataclass(frozen=True)
class TierOutcome:
    """What one tier produced and how much of its budget it used."""

    tier: Tier
    success: bool
    attempts_used: int
    data: dict[str, Any] | None = None
    confidence: float | None = None
    #: True when a non-retryable error ended the tier early.
    fast_failed: bool = False
    records: tuple[AttemptRecord, ...] = field(default_factory=tuple)


class TierExecutor:
    """Run one provider through a bounded retry loop.

    Stateless between calls: one executor can serve any number of concurrent
    orchestrator calls.
    """

    def __init__(
        self,
        *,
        backoff: BackoffPolicy | None = None,
        max_filled_fraction: float = 0.5,
        text_temperature: float = _TEXT_TEMPERATURE,
        text_max_tokens: int = _TEXT_MAX_TOKENS,
    ) -> None:
        """Configure inter-attempt backoff and sanitizer tolerance.

        Args:
            backoff: Delay between failed attempts (default: none).
            max_filled_fraction: Largest share of required fields the sanitizer
                may fill with defaults before the payload counts as a
                validation failure rather than shape drift.
            text_temperature: Sampling temperature for free-text providers.
            text_max_tokens: Output token cap for free-text providers.
        """
        if not 0.0 <= max_filled_fraction <= 1.0:
            raise ConfigurationError(
                f"max_filled_fraction must be within [0, 1], got {max_filled_fraction}"
            )
        self.backoff = backoff or BackoffPolicy()
        self.max_filled_fraction = max_filled_fraction
        self.text_temperature = text_temperature
        self.text_max_tokens = text_max_tokens

    async def execute(
        self,
        provider: Any,
        request: GenerationRequest,
        max_retries: int | None = None,
        *,
        tier: Tier | None = None,
    ) -> TierOutcome:
        """Run up to *max_retries* attempts against *provider*.

        Never raises for provider failures; caller cancellation propagates.
        """
        budget = request.config.max_retries if max_retries is None else max_retries
        if budget < 1:
            raise ConfigurationError(f"max_retries must be ≥ 1, got {budget}")
        tier = tier or provider.profile.tier
        name = provider.profile.name
        records: list[AttemptRecord] = []

        for attempt in range(1, budget + 1):
            start = time.perf_counter()
            try:
                data, confidence = await self._attempt(
                    provider, request, tier=tier, attempt=attempt
                )
            except asyncio.CancelledError:
                log.info("Tier %s cancelled during attempt %d", tier.value, attempt)
                raise
            except Exception as exc:
                err = classify_exception(exc)
                records.append(
                    AttemptRecord(
                        tier=tier,
                        attempt=attempt,
                        outcome=err.kind,
                        detail=str(err),
                        confidence=getattr(err, "confidence", None),
                        duration_ms=_elapsed_ms(start),
                    )
                )
                if not _retryable(err):
                    log.warning(
                        "Tier %s (%s) hit non-retryable %s on attempt %d; "
                        "abandoning tier: %s",
                        tier.value,
                        name,
                        err.kind.value,
                        attempt,
                        err,
                    )
                    return TierOutcome(
                        tier=tier,
                        success=False,
                        attempts_used=attempt,
                        fast_failed=True,
                        records=tuple(records),
                    )
                log.info(
                    "Tier %s (%s) attempt %d/%d failed (%s): %s",
                    tier.value,
                    name,
                    attempt,
                    budget,
                    err.kind.value,
                    err,
                )
                if attempt < budget:
                    delay = compute_backoff_delay(
                        self.backoff, retry_index=attempt, error=err
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)
                continue

            records.append(
                AttemptRecord(
                    tier=tier,
                    attempt=attempt,
                    outcome="ok",
                    confidence=confidence,
                    duration_ms=_elapsed_ms(start),
                )
            )
            log.info(
                "Tier %s (%s) succeeded on attempt %d/%d (confidence=%.2f)",
                tier.value,
                name,
                attempt,
                budget,
                confidence,
            )
            return TierOutcome(
                tier=tier,
                success=True,
                attempts_used=attempt,
                data=data,
                confidence=confidence,
                records=tuple(records),
            )

        log.info("Tier %s (%s) exhausted %d attempt(s)", tier.value, name, budget)
        return TierOutcome(
            tier=tier,
            success=False,
            attempts_used=budget,
            records=tuple(records),
        )

    async def _attempt(
        self,
        provider: Any,
        request: GenerationRequest,
        *,
        tier: Tier,
        attempt: int,
    ) -> tuple[dict[str, Any], float]:
        """Run one attempt; raise a classified error on any rejection."""
        prompt = build_enhanced_prompt(request, attempt=attempt)
        timeout_s = request.config.timeout_s
        try:
            async with asyncio.timeout(timeout_s):
                data = await self._call(provider, request, prompt, timeout_s=timeout_s)
        except TimeoutError as e:
            raise GenerationTimeout(
                f"{provider.profile.name} did not respond within "
                f"{request.config.timeout_ms}ms",
                retryable=True,
                provider=provider.profile.name,
                phase="generate",
            ) from e

        schema = request.schema
        sanitized, sanitize_report = sanitize_with_report(data, schema)
        invented = sanitize_report.invented()
        if schema.required and (
            len(invented) / len(schema.required) > self.max_filled_fraction
        ):
            raise ValidationFailure(
                f"Payload lacked usable values for {len(invented)} of "
                f"{len(schema.required)} required fields ({', '.join(invented)})",
                report=validate(data, schema),
            )

        report = validate(sanitized, schema)
        if not report.passed:
            raise ValidationFailure(
                f"Function response validation failed: {report.describe()}",
                report=report,
            )

        profile = provider.profile
        base = profile.base_confidence if profile.tier is tier else None
        confidence = score(sanitized, tier, base=base)
        threshold = request.config.quality_threshold
        if confidence < threshold:
            raise LowConfidence(
                f"Confidence {confidence:.2f} below threshold {threshold:.2f}",
                confidence=confidence,
                threshold=threshold,
            )
        return sanitized, confidence

    async def _call(
        self,
        provider: Any,
        request: GenerationRequest,
        prompt: str,
        *,
        timeout_s: float,
    ) -> dict[str, Any]:
        """Invoke the provider and return a parsed (unsanitized) payload."""
        if isinstance(provider, StructuredProvider):
            schema_json = request.schema.to_json_schema()
            if request.schema.description and "description" not in schema_json:
                schema_json["description"] = request.schema.description
            raw = await provider.generate_structured(
                function_name=request.function_name,
                prompt=prompt,
                schema=schema_json,
                system_message=request.system_message,
                timeout_s=timeout_s,
            )
            return coerce_structured(raw)

        if isinstance(provider, TextProvider):
            if request.system_message:
                prompt = f"{request.system_message}\n\n{prompt}"
            text = await provider.generate_text(
                prompt=prompt,
                temperature=self.text_temperature,
                max_tokens=self.text_max_tokens,
            )
            return extract_json_object(text)

        raise ConfigurationError(
            f"{type(provider).__name__} implements neither generate_structured() "
            "nor generate_text()",
        )


def _retryable(err: CascadeError) -> bool:
    if not err.kind.retryable:
        return False
    return not (isinstance(err, APIError) and err.retryable is False)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))

