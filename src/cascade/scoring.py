"""Confidence scoring for validated payloads.

The score is a deterministic completeness heuristic: a per-tier base plus
small bonuses for payload size and key count, clamped to ``[0, 1]``.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from cascade.result import Tier

BASE_CONFIDENCE: Mapping[Tier, float] = {
    Tier.PRIMARY: 0.85,
    Tier.SECONDARY: 0.75,
}

#: Confidence reported for the deterministic fallback table.
FALLBACK_CONFIDENCE = 0.6

_LENGTH_STEPS = (500, 1000)
_KEY_STEPS = (5, 8)
_BONUS = 0.05


def serialized_length(data: Any) -> int:
    """Length of the compact JSON serialization used for scoring."""
    return len(json.dumps(data, ensure_ascii=False, default=str))


def score(data: Any, tier: Tier, *, base: float | None = None) -> float:
    """Return the confidence of *data* produced by a provider on *tier*.

    Args:
        data: Validated (and sanitized) payload.
        tier: ``Tier.PRIMARY`` or ``Tier.SECONDARY``.
        base: Optional base override from a ``ProviderProfile``.

    Raises:
        ValueError: For ``Tier.FALLBACK``, which uses ``FALLBACK_CONFIDENCE``.
    """
    if tier is Tier.FALLBACK:
        raise ValueError("The fallback tier has a fixed confidence; it is not scored")

    confidence = BASE_CONFIDENCE[tier] if base is None else base

    length = serialized_length(data)
    confidence += sum(_BONUS for step in _LENGTH_STEPS if length > step)

    if isinstance(data, Mapping):
        n_keys = len(data)
        confidence += sum(_BONUS for step in _KEY_STEPS if n_keys >= step)

    return round(min(max(confidence, 0.0), 1.0), 6)
