"""Configuration: frozen Config selecting the primary and secondary providers."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Literal

from dotenv import load_dotenv

from cascade.errors import ConfigurationError
from cascade.request import GenerationConfig
from cascade.retry import BackoffPolicy

load_dotenv()

StructuredProviderName = Literal["openai", "anthropic"]
TextProviderName = Literal["gemini"]

# Provider-specific API key environment variable names
_API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

_DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-5",
    "gemini": "gemini-2.0-flash",
}


@dataclass(frozen=True)
class Config:
    """Immutable configuration for building an orchestrator.

    API keys are auto-resolved from standard environment variables. A missing
    key is not an error: the primary tier is probed and skipped, and the
    secondary tier fails fast, so the call still degrades to the deterministic
    table.

    Example:
        config = Config(primary="openai", secondary="gemini")
        # Keys resolved from OPENAI_API_KEY and GEMINI_API_KEY
    """

    primary: StructuredProviderName = "openai"
    secondary: TextProviderName | None = "gemini"
    primary_model: str | None = None
    secondary_model: str | None = None
    #: Auto-resolved from the primary provider's environment variable when *None*.
    primary_api_key: str | None = None
    #: Auto-resolved from the secondary provider's environment variable when *None*.
    secondary_api_key: str | None = None
    use_mock: bool = False
    #: Default budget for requests that do not carry their own.
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    probe_timeout_s: float = 5.0

    def __post_init__(self) -> None:
        """Validate provider names and auto-resolve API keys."""
        if self.primary not in ("openai", "anthropic"):
            raise ConfigurationError(
                f"Unknown primary provider: {self.primary!r}",
                hint="Supported primary providers: 'openai', 'anthropic'",
            )
        if self.secondary not in (None, "gemini"):
            raise ConfigurationError(
                f"Unknown secondary provider: {self.secondary!r}",
                hint="Supported secondary providers: 'gemini' (or None to disable)",
            )
        if self.probe_timeout_s <= 0:
            raise ConfigurationError(
                f"probe_timeout_s must be > 0, got {self.probe_timeout_s}",
                hint="This is the deadline for the primary availability probe.",
            )

        if self.primary_model is None:
            object.__setattr__(self, "primary_model", _DEFAULT_MODELS[self.primary])
        if self.secondary is not None and self.secondary_model is None:
            object.__setattr__(
                self, "secondary_model", _DEFAULT_MODELS[self.secondary]
            )

        if self.use_mock:
            return
        if self.primary_api_key is None:
            object.__setattr__(
                self,
                "primary_api_key",
                os.environ.get(_API_KEY_ENV_VARS[self.primary]),
            )
        if self.secondary is not None and self.secondary_api_key is None:
            object.__setattr__(
                self,
                "secondary_api_key",
                os.environ.get(_API_KEY_ENV_VARS[self.secondary]),
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(primary={self.primary!r}, primary_model={self.primary_model!r}, "
            f"secondary={self.secondary!r}, secondary_model={self.secondary_model!r}, "
            f"primary_api_key={'[REDACTED]' if self.primary_api_key else None}, "
            f"secondary_api_key={'[REDACTED]' if self.secondary_api_key else None}, "
            f"use_mock={self.use_mock})"
        )

    __repr__ = __str__
