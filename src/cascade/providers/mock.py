"""Mock providers for testing and offline development without API calls."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from cascade.providers.base import ProviderProfile
from cascade.result import Tier
from cascade.sanitize import default_for

if TYPE_CHECKING:
    from collections.abc import Mapping


def _synthesize(schema: Mapping[str, Any]) -> dict[str, Any]:
    """Build a payload with one deterministic value per declared property."""
    properties = schema.get("properties", {})
    payload: dict[str, Any] = {}
    if isinstance(properties, dict):
        for name, definition in properties.items():
            declared = definition.get("type") if isinstance(definition, dict) else None
            if not isinstance(declared, str):
                declared = None
            payload[name] = default_for(name, declared)
    for name in schema.get("required", []) or []:
        payload.setdefault(name, default_for(name, None))
    return payload


class MockStructuredProvider:
    """Structured provider that fills every schema property deterministically."""

    def __init__(self, *, tier: Tier = Tier.PRIMARY, model: str = "mock") -> None:
        """Create a mock with a placeholder credential."""
        self._profile = ProviderProfile(
            name="mock", tier=tier, model=model, api_key="mock-key"
        )

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        return self._profile

    async def generate_structured(
        self,
        *,
        function_name: str,  # noqa: ARG002
        prompt: str,  # noqa: ARG002
        schema: Mapping[str, Any],
        system_message: str | None = None,  # noqa: ARG002
        timeout_s: float | None = None,  # noqa: ARG002
    ) -> Mapping[str, Any] | str:
        """Return a synthetic payload honouring *schema*."""
        return _synthesize(schema)

    async def ping(self) -> None:
        """Always reachable."""


class MockTextProvider:
    """Free-text provider that wraps a synthetic payload in prose."""

    def __init__(self, *, tier: Tier = Tier.SECONDARY, model: str = "mock") -> None:
        """Create a mock with a placeholder credential."""
        self._profile = ProviderProfile(
            name="mock-text", tier=tier, model=model, api_key="mock-key"
        )

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        return self._profile

    async def generate_text(
        self,
        *,
        prompt: str,
        temperature: float | None = None,  # noqa: ARG002
        max_tokens: int | None = None,  # noqa: ARG002
    ) -> str:
        """Echo the schema found in *prompt* back as a filled JSON object."""
        marker = prompt.rfind("\n{")
        schema: Mapping[str, Any] = {}
        if marker != -1:
            try:
                schema = json.loads(prompt[marker + 1 :])
            except ValueError:
                schema = {}
        payload = json.dumps(_synthesize(schema), ensure_ascii=False)
        return f"Here is the JSON you asked for:\n```json\n{payload}\n```"

    async def ping(self) -> None:
        """Always reachable."""
