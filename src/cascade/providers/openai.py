"""OpenAI provider: structured output through forced function calling."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from cascade.errors import APIError, AuthenticationError, CascadeError, ParseFailure
from cascade.providers._errors import _auth_hint, wrap_provider_error
from cascade.providers.base import ProviderProfile
from cascade.result import Tier

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_MODEL = "gpt-4o"
_TEMPERATURE = 0.2
_MAX_TOKENS = 3000


class OpenAIProvider:
    """OpenAI Chat Completions provider returning function-call arguments."""

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
            name="openai",
            tier=tier,
            model=model,
            api_key=api_key,
            key_prefix="sk-",
            min_key_length=20,
            base_confidence=base_confidence,
        )
        self._client: Any = None

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        return self._profile

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            if not self._profile.api_key:
                raise AuthenticationError(
                    f"No API key configured for {self._profile.name}",
                    hint=_auth_hint(self._profile.name),
                    retryable=False,
                    provider=self._profile.name,
                )
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise APIError(
                    "openai package not installed",
                    hint="pip install openai",
                ) from e
            # Retries are owned by the tier executor.
            self._client = AsyncOpenAI(api_key=self._profile.api_key, max_retries=0)
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
        """Force a call to *function_name* and return its arguments."""
        client = self._get_client()

        messages: list[dict[str, str]] = []
        if system_message:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": prompt})

        function_def: dict[str, Any] = {
            "name": function_name,
            "parameters": dict(schema),
        }
        description = schema.get("description")
        if isinstance(description, str):
            function_def["description"] = description

        create_kwargs: dict[str, Any] = {
            "model": self._profile.model,
            "messages": messages,
            "tools": [{"type": "function", "function": function_def}],
            "tool_choice": {"type": "function", "function": {"name": function_name}},
            "temperature": _TEMPERATURE,
            "max_tokens": _MAX_TOKENS,
        }
        if timeout_s is not None:
            create_kwargs["timeout"] = timeout_s

        try:
            response = await client.chat.completions.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except CascadeError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="openai",
                phase="generate",
                message="OpenAI generate failed",
            ) from e

        return _extract_arguments(response, function_name)

    async def ping(self) -> None:
        """Retrieve the configured model: cheap, authenticated, no tokens spent."""
        client = self._get_client()
        try:
            await client.models.retrieve(self._profile.model)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider="openai", phase="probe", message="OpenAI probe failed"
            ) from e

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _extract_arguments(response: Any, function_name: str) -> Mapping[str, Any] | str:
    """Return the arguments of the forced tool call in *response*."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise ParseFailure("OpenAI response contained no choices")
    message = getattr(choices[0], "message", None)

    for call in getattr(message, "tool_calls", None) or []:
        fn = getattr(call, "function", None)
        if getattr(fn, "name", None) != function_name:
            continue
        arguments = getattr(fn, "arguments", None)
        if isinstance(arguments, str) and arguments.strip():
            try:
                parsed = json.loads(arguments)
            except ValueError:
                # Leave recovery to the bracket-matching extractor.
                return arguments
            if isinstance(parsed, dict):
                return parsed
            raise ParseFailure(
                f"Function arguments for {function_name!r} are not a JSON object"
            )

    raise ParseFailure(
        f"No function call response for {function_name!r}",
        hint="The model answered in text instead of calling the function.",
    )
