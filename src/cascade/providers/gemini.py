"""Gemini provider: free-text generation through google-genai."""

from __future__ import annotations

import asyncio
from typing import Any

from cascade.errors import APIError, AuthenticationError, CascadeError, ParseFailure
from cascade.providers._errors import _auth_hint, wrap_provider_error
from cascade.providers.base import ProviderProfile
from cascade.result import Tier

DEFAULT_MODEL = "gemini-2.0-flash"
_DEFAULT_TEMPERATURE = 0.3
_DEFAULT_MAX_TOKENS = 2048


class GeminiProvider:
    """Google Gemini API provider returning raw text."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        tier: Tier = Tier.SECONDARY,
        base_confidence: float | None = None,
    ) -> None:
        """Create provider with an API key; the client is created lazily."""
        self._profile = ProviderProfile(
            name="gemini",
            tier=tier,
            model=model,
            api_key=api_key,
            key_prefix="AIza",
            min_key_length=30,
            base_confidence=base_confidence,
        )
        self._client: Any = None

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        return self._profile

    def _get_client(self) -> Any:
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            if not self._profile.api_key:
                raise AuthenticationError(
                    f"No API key configured for {self._profile.name}",
                    hint=_auth_hint(self._profile.name),
                    retryable=False,
                    provider=self._profile.name,
                )
            try:
                from google import genai
            except ImportError as e:
                raise APIError(
                    "google-genai package not installed",
                    hint="pip install google-genai",
                ) from e
            self._client = genai.Client(api_key=self._profile.api_key)
        return self._client

    async def generate_text(
        self,
        *,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate text from the Gemini model."""
        client = self._get_client()
        from google.genai import types

        config = types.GenerateContentConfig(
            temperature=_DEFAULT_TEMPERATURE if temperature is None else temperature,
            max_output_tokens=max_tokens or _DEFAULT_MAX_TOKENS,
            top_p=0.8,
            top_k=40,
        )
        try:
            response = await client.aio.models.generate_content(
                model=self._profile.model,
                contents=prompt,
                config=config,
            )
        except asyncio.CancelledError:
            raise
        except CascadeError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="gemini",
                phase="generate",
                message="Gemini generate failed",
            ) from e

        text = getattr(response, "text", None)
        if not isinstance(text, str) or not text:
            raise ParseFailure("Invalid response structure from Gemini API")
        return text

    async def ping(self) -> None:
        """Fetch the configured model's metadata."""
        client = self._get_client()
        try:
            await client.aio.models.get(model=self._profile.model)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider="gemini", phase="probe", message="Gemini probe failed"
            ) from e

    async def aclose(self) -> None:
        """Release the client; google-genai pools are closed with it."""
        client = self._client
        if client is None:
            return
        self._client = None
        aio = getattr(client, "aio", None)
        aclose = getattr(aio, "aclose", None)
        if callable(aclose):
            await aclose()
