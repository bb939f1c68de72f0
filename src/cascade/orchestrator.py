"""Fallback chain orchestrator.

Sequences the tiers of one generation call::

    INIT          -> PRIMARY         primary probe passed
    INIT          -> SECONDARY       primary probe failed (no attempt counted)
    PRIMARY       -> DONE            result accepted
    PRIMARY       -> SECONDARY       tier failed, fallback enabled
    PRIMARY       -> DETERMINISTIC   tier failed, fallback disabled
    SECONDARY     -> DONE            result accepted
    SECONDARY     -> DETERMINISTIC   tier failed
    DETERMINISTIC -> DONE            static table, never fails

Tiers run strictly one after another. The orchestrator holds only read-only
provider handles, so concurrent calls need no coordination.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import TYPE_CHECKING, Any

from cascade import fallbacks
from cascade.errors import FailureKind
from cascade.probe import PROBE_TIMEOUT_S, probe
from cascade.result import AttemptRecord, GenerationResult, Tier
from cascade.sanitize import sanitize
from cascade.scoring import FALLBACK_CONFIDENCE
from cascade.tier import TierExecutor, TierOutcome

if TYPE_CHECKING:
    from cascade.request import GenerationRequest

log = logging.getLogger(__name__)


class ChainState(str, Enum):
    """States of the fallback chain."""

    INIT = "init"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    DETERMINISTIC = "deterministic"
    DONE = "done"


@dataclass(frozen=True)
class HealthReport:
    """Availability of each configured provider."""

    primary: bool
    secondary: bool
    latency_ms: dict[str, int]
    reasons: dict[str, str]

    @property
    def overall(self) -> bool:
        """True when at least one provider tier is usable."""
        return self.primary or self.secondary


class Orchestrator:
    """Turn a GenerationRequest into a GenerationResult; never fails.

    Args:
        primary: Structured provider tried first (gated by an availability probe).
        secondary: Provider tried when the primary tier fails (no probe gate).
        executor: Shared tier executor; a default one is created when omitted.
        probe_timeout_s: Deadline for the primary availability probe.
    """

    def __init__(
        self,
        primary: Any | None,
        secondary: Any | None = None,
        *,
        executor: TierExecutor | None = None,
        probe_timeout_s: float = PROBE_TIMEOUT_S,
    ) -> None:
        """Store injected provider handles; nothing is created lazily here."""
        self.primary = primary
        self.secondary = secondary
        self.executor = executor or TierExecutor()
        self.probe_timeout_s = probe_timeout_s

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run the fallback chain for *request*.

        Provider failures of every kind are absorbed; only caller cancellation
        propagates (and aborts the in-flight provider call).
        """
        start = time.perf_counter()
        config = request.config
        attempts = 0
        trace: list[AttemptRecord] = []
        outcome: TierOutcome | None = None

        state = ChainState.INIT
        log.info("Generating %r", request.function_name)

        while state is not ChainState.DONE:
            if state is ChainState.INIT:
                checked = await probe(self.primary, timeout_s=self.probe_timeout_s)
                if checked.available:
                    state = self._transition(state, ChainState.PRIMARY)
                else:
                    trace.append(
                        AttemptRecord(
                            tier=Tier.PRIMARY,
                            attempt=0,
                            outcome=FailureKind.PROVIDER_UNAVAILABLE,
                            detail=checked.reason,
                        )
                    )
                    state = self._transition(
                        state, ChainState.SECONDARY, reason=checked.reason
                    )

            elif state is ChainState.PRIMARY:
                outcome = await self.executor.execute(
                    self.primary, request, config.max_retries, tier=Tier.PRIMARY
                )
                attempts += outcome.attempts_used
                trace.extend(outcome.records)
                if outcome.success:
                    state = self._transition(state, ChainState.DONE)
                elif config.fallback_enabled:
                    state = self._transition(
                        state, ChainState.SECONDARY, reason=_why(outcome)
                    )
                else:
                    state = self._transition(
                        state,
                        ChainState.DETERMINISTIC,
                        reason=f"{_why(outcome)}; fallback disabled",
                    )

            elif state is ChainState.SECONDARY:
                if self.secondary is None:
                    trace.append(
                        AttemptRecord(
                            tier=Tier.SECONDARY,
                            attempt=0,
                            outcome=FailureKind.PROVIDER_UNAVAILABLE,
                            detail="not configured",
                        )
                    )
                    state = self._transition(
                        state, ChainState.DETERMINISTIC, reason="not configured"
                    )
                    continue
                outcome = await self.executor.execute(
                    self.secondary, request, config.max_retries, tier=Tier.SECONDARY
                )
                attempts += outcome.attempts_used
                trace.extend(outcome.records)
                if outcome.success:
                    state = self._transition(state, ChainState.DONE)
                else:
                    state = self._transition(
                        state, ChainState.DETERMINISTIC, reason=_why(outcome)
                    )

            elif state is ChainState.DETERMINISTIC:
                outcome = None
                trace.append(
                    AttemptRecord(
                        tier=Tier.FALLBACK,
                        attempt=1,
                        outcome="ok",
                        confidence=FALLBACK_CONFIDENCE,
                    )
                )
                state = self._transition(state, ChainState.DONE)

        if outcome is not None and outcome.success and outcome.data is not None:
            data = outcome.data
            provider = outcome.tier
            confidence = outcome.confidence or 0.0
        else:
            data = sanitize(fallbacks.lookup(request.function_name), request.schema)
            provider = Tier.FALLBACK
            confidence = FALLBACK_CONFIDENCE

        elapsed_ms = max(0, int((time.perf_counter() - start) * 1000))
        result = GenerationResult(
            data=data,
            provider=provider,
            attempts=max(1, attempts),
            confidence=confidence,
            processing_time_ms=elapsed_ms,
            trace=tuple(trace),
        )
        log.info(
            "Generated %r via %s (attempts=%d, confidence=%.2f, %dms)",
            request.function_name,
            provider.value,
            result.attempts,
            confidence,
            elapsed_ms,
        )
        return result

    async def health_check(self) -> HealthReport:
        """Probe both providers concurrently and report their availability."""
        primary, secondary = await asyncio.gather(
            probe(self.primary, timeout_s=self.probe_timeout_s),
            probe(self.secondary, timeout_s=self.probe_timeout_s),
        )
        latency: dict[str, int] = {}
        reasons: dict[str, str] = {}
        for label, checked in (("primary", primary), ("secondary", secondary)):
            if checked.latency_ms is not None:
                latency[label] = checked.latency_ms
            if checked.reason:
                reasons[label] = checked.reason
        return HealthReport(
            primary=primary.available,
            secondary=secondary.available,
            latency_ms=latency,
            reasons=reasons,
        )

    @staticmethod
    def _transition(
        current: ChainState, target: ChainState, *, reason: str = ""
    ) -> ChainState:
        if reason:
            log.info("Chain %s -> %s (%s)", current.value, target.value, reason)
        else:
            log.info("Chain %s -> %s", current.value, target.value)
        return target


def _why(outcome: TierOutcome) -> str:
    if outcome.fast_failed:
        return "authentication failure"
    return f"exhausted {outcome.attempts_used} attempt(s)"
