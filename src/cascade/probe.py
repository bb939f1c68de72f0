"""Provider availability probe.

The credential shape is checked locally, then one minimal live request is
made under a short deadline. Probing never raises (caller cancellation aside) and
results are never cached.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Any

from cascade.retry import classify_exception

log = logging.getLogger(__name__)

#: Deadline for the live probe request, in seconds.
PROBE_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one provider."""

    available: bool
    reason: str = ""
    latency_ms: int | None = None


async def probe(provider: Any, *, timeout_s: float = PROBE_TIMEOUT_S) -> ProbeResult:
    """Check credential shape, then issue one live request under *timeout_s*."""
    if provider is None:
        return ProbeResult(available=False, reason="not configured")

    profile = getattr(provider, "profile", None)
    if profile is None:
        problem = "provider has no profile"
    else:
        problem = profile.credential_problem()
    if problem is not None:
        log.info("Provider %s unavailable: %s", _name(provider), problem)
        return ProbeResult(available=False, reason=problem)

    ping = getattr(provider, "ping", None)
    if not callable(ping):
        return ProbeResult(available=False, reason="provider does not support ping()")

    start = time.perf_counter()
    try:
        async with asyncio.timeout(timeout_s):
            await ping()
    except TimeoutError:
        log.info("Provider %s probe timed out after %.1fs", _name(provider), timeout_s)
        reason = f"probe timed out after {timeout_s}s"
        return ProbeResult(available=False, reason=reason)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        err = classify_exception(exc)
        log.info(
            "Provider %s probe failed (%s): %s", _name(provider), err.kind.value, err
        )
        return ProbeResult(available=False, reason=f"{err.kind.value}: {err}")

    latency_ms = int((time.perf_counter() - start) * 1000)
    log.debug("Provider %s available (%dms)", _name(provider), latency_ms)
    return ProbeResult(available=True, latency_ms=latency_ms)


async def available(provider: Any, *, timeout_s: float = PROBE_TIMEOUT_S) -> bool:
    """Return True when *provider* looks usable right now."""
    result = await probe(provider, timeout_s=timeout_s)
    return result.available


def _name(provider: Any) -> str:
    profile = getattr(provider, "profile", None)
    return getattr(profile, "name", None) or type(provider).__name__
