"""Anthropic Messages API provider: structured output through forced tool use."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from cascade.errors import APIError, AuthenticationError, CascadeError, ParseFailure
from cascade.providers._errors import _auth_hint, wrap_provider_error
from cascade.providers.base import ProviderProfile
from cascade.result import Tier

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_MODEL = "claude-sonnet-4-5"
_ANTHROPIC_MAX_TOKENS = 4096
_TEMPERATURE = 0.2


class AnthropicProvider:
    """Anthropic Messages API provider returning tool-use input."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        tier: Tier = Tier.PRIMARY,
        base_confidence: float | None = None,
    ) -> None:
        """Initialize with an API key; the client is created lazily."""
        self._profile = ProviderProfile(
            name="anthropic",
            tier=tier,
            model=model,
            api_key=api_key,
            key_prefix="sk-ant-",
            min_key_length=20,
            base_confidence=base_confidence,
        )
        self._client: Any = None

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        return self._profile

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            if not self._profile.api_key:
                raise AuthenticationError(
                    f"No API key configured for {self._profile.name}",
                    hint=_auth_hint(self._profile.name),
                    retryable=False,
                    provider=self._profile.name,
                )
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise APIError(
                    "anthropic package not installed",
                    hint="pip install anthropic",
                ) from e
            self._client = AsyncAnthropic(api_key=self._profile.api_key, max_retries=0)
        return self._client

    async def generate_structured(
        self,
        *,
        function_name: str,
        prompt: str,
        schema: Mapping[str, Any],
        system_message: str | None = None,
        timeout_s: float | None = None,
    ) -> Mapping[str, Any] | str:
        """Force a ``tool_use`` block for *function_name* and return its input."""
        client = self._get_client()

        tool: dict[str, Any] = {"name": function_name, "input_schema": dict(schema)}
        description = schema.get("description")
        if isinstance(description, str):
            tool["description"] = description

        create_kwargs: dict[str, Any] = {
            "model": self._profile.model,
            "max_tokens": _ANTHROPIC_MAX_TOKENS,
            "temperature": _TEMPERATURE,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [tool],
            "tool_choice": {"type": "tool", "name": function_name},
        }
        if system_message:
            create_kwargs["system"] = system_message
        if timeout_s is not None:
            create_kwargs["timeout"] = timeout_s

        try:
            response = await client.messages.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except CascadeError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="anthropic",
                phase="generate",
                message="Anthropic generate failed",
            ) from e

        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) != "tool_use":
                continue
            if getattr(block, "name", None) != function_name:
                continue
            payload = getattr(block, "input", None)
            if isinstance(payload, dict):
                return payload
        raise ParseFailure(
            f"No tool_use block for {function_name!r} in Anthropic response",
        )

    async def ping(self) -> None:
        """Retrieve the configured model without spending tokens."""
        client = self._get_client()
        try:
            await client.models.retrieve(self._profile.model)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="anthropic",
                phase="probe",
                message="Anthropic probe failed",
            ) from e

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()
