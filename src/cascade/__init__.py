"""Cascade: resilient structured generation across a chain of LLM providers.

Public API:
    - generate(): One structured generation call through the fallback chain
    - health_check(): Probe the configured providers
    - build_orchestrator(): Wire providers from a Config for repeated calls
    - Config / GenerationConfig: Configuration dataclasses
    - GenerationResult: The result every call returns
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from cascade.config import Config
from cascade.errors import (
    APIError,
    AuthenticationError,
    CascadeError,
    ConfigurationError,
    FailureKind,
    GenerationTimeout,
    LowConfidence,
    ParseFailure,
    ProviderUnavailable,
    RateLimitError,
    TransientNetworkError,
    ValidationFailure,
)
from cascade.orchestrator import HealthReport, Orchestrator
from cascade.providers.base import close_provider
from cascade.request import (
    GenerationConfig,
    GenerationRequest,
    Schema,
    normalize_request,
)
from cascade.result import AttemptRecord, GenerationResult, Tier
from cascade.retry import BackoffPolicy
from cascade.tier import TierExecutor

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pydantic import BaseModel

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("cascade-gen")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("cascade").addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


def build_orchestrator(config: Config | None = None) -> Orchestrator:
    """Create providers for *config* and wire them into an Orchestrator.

    The caller owns the returned orchestrator and should ``await
    close_orchestrator(...)`` when done with it.
    """
    config = config or Config()
    executor = TierExecutor(backoff=config.backoff)

    if config.use_mock:
        from cascade.providers.mock import MockStructuredProvider, MockTextProvider

        secondary_mock = MockTextProvider() if config.secondary else None
        return Orchestrator(
            MockStructuredProvider(),
            secondary_mock,
            executor=executor,
            probe_timeout_s=config.probe_timeout_s,
        )

    primary: Any
    if config.primary == "anthropic":
        from cascade.providers.anthropic import AnthropicProvider

        primary = AnthropicProvider(
            config.primary_api_key, model=config.primary_model or ""
        )
    else:
        from cascade.providers.openai import OpenAIProvider

        primary = OpenAIProvider(
            config.primary_api_key, model=config.primary_model or ""
        )

    secondary: Any = None
    if config.secondary == "gemini":
        from cascade.providers.gemini import GeminiProvider

        secondary = GeminiProvider(
            config.secondary_api_key, model=config.secondary_model or ""
        )

    return Orchestrator(
        primary,
        secondary,
        executor=executor,
        probe_timeout_s=config.probe_timeout_s,
    )


async def close_orchestrator(orchestrator: Orchestrator) -> None:
    """Release provider clients held by *orchestrator*."""
    for provider in (orchestrator.primary, orchestrator.secondary):
        try:
            await close_provider(provider)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary failure.
            logger.warning("Provider cleanup failed: %s", exc)


async def generate(
    function_name: str,
    schema: Schema | Mapping[str, Any] | type[BaseModel],
    prompt: str,
    *,
    system_message: str | None = None,
    config: Config | None = None,
    generation: GenerationConfig | None = None,
) -> GenerationResult:
    """Generate a structured payload, degrading through the provider chain.

    Args:
        function_name: Identifier of the output shape (also keys the
            deterministic fallback table).
        schema: JSON schema or function-calling definition of the payload.
        prompt: Natural-language instruction.
        system_message: Optional system-level instruction.
        config: Provider selection; defaults to ``Config()``.
        generation: Per-request budget; defaults to ``config.generation``.

    Returns:
        GenerationResult. Provider failures never raise; inspect
        ``result.provider`` or call ``result.raise_if_degraded()``.

    Raises:
        ConfigurationError: If the request itself is malformed.

    Example:
        result = await generate(
            "analyze_app_intent",
            {"type": "object", "properties": {...}, "required": [...]},
            "I need a tool to track my reading list",
        )
        print(result.provider, result.data)
    """
    config = config or Config()
    request = normalize_request(
        function_name,
        schema,
        prompt,
        system_message=system_message,
        config=generation or config.generation,
    )
    orchestrator = build_orchestrator(config)
    try:
        return await orchestrator.generate(request)
    finally:
        await close_orchestrator(orchestrator)


async def health_check(config: Config | None = None) -> HealthReport:
    """Probe the configured providers concurrently.

    Example:
        report = await health_check(Config(primary="openai"))
        if not report.overall:
            print(report.reasons)
    """
    orchestrator = build_orchestrator(config)
    try:
        return await orchestrator.health_check()
    finally:
        await close_orchestrator(orchestrator)


# Re-export for convenience
__all__ = [
    "APIError",
    "AttemptRecord",
    "AuthenticationError",
    "BackoffPolicy",
    "CascadeError",
    "Config",
    "ConfigurationError",
    "FailureKind",
    "GenerationConfig",
    "GenerationRequest",
    "GenerationResult",
    "GenerationTimeout",
    "HealthReport",
    "LowConfidence",
    "Orchestrator",
    "ParseFailure",
    "ProviderUnavailable",
    "RateLimitError",
    "Schema",
    "Tier",
    "TierExecutor",
    "TransientNetworkError",
    "ValidationFailure",
    "build_orchestrator",
    "close_orchestrator",
    "generate",
    "health_check",
    "normalize_request",
]
