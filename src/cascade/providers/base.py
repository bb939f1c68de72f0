"""Provider protocols and the read-only profile each provider carries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from cascade.result import Tier
from cascade.scoring import BASE_CONFIDENCE

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class ProviderProfile:
    """Identity, credentials and scoring base for one provider.

    Long-lived and read-only; shared by every concurrent orchestrator call.
    """

    name: str
    tier: Tier
    model: str
    api_key: str | None = field(default=None, repr=False)
    #: Expected credential prefix (``"sk-"`` for OpenAI); empty disables the check.
    key_prefix: str = ""
    min_key_length: int = 1
    #: Defaults to the tier's base confidence.
    base_confidence: float | None = None

    def __post_init__(self) -> None:
        """Resolve the tier default for ``base_confidence``."""
        if self.tier is Tier.FALLBACK:
            raise ValueError("Providers cannot occupy the fallback tier")
        if self.base_confidence is None:
            object.__setattr__(self, "base_confidence", BASE_CONFIDENCE[self.tier])
        elif not 0.0 <= self.base_confidence <= 1.0:
            raise ValueError("base_confidence must be within [0, 1]")

    def credential_problem(self) -> str | None:
        """Return why the credential shape is unusable, or None when it looks valid."""
        key = self.api_key
        if not isinstance(key, str) or not key.strip():
            return "missing API key"
        if key != key.strip():
            return "API key has surrounding whitespace"
        if self.key_prefix and not key.startswith(self.key_prefix):
            return f"API key does not start with {self.key_prefix!r}"
        if len(key) < self.min_key_length:
            return f"API key shorter than {self.min_key_length} characters"
        return None

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"ProviderProfile(name={self.name!r}, tier={self.tier.value!r}, "
            f"model={self.model!r}, api_key={'[REDACTED]' if self.api_key else None})"
        )


@runtime_checkable
class StructuredProvider(Protocol):
    """Provider that returns an already-structured payload (function calling)."""

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        ...

    async def generate_structured(
        self,
        *,
        function_name: str,
        prompt: str,
        schema: Mapping[str, Any],
        system_message: str | None = None,
        timeout_s: float | None = None,
    ) -> Mapping[str, Any] | str:
        """Return the function-call arguments as a mapping (or JSON string)."""
        ...

    async def ping(self) -> None:
        """Issue one minimal live request; raise on any failure."""
        ...


@runtime_checkable
class TextProvider(Protocol):
    """Provider that returns free text expected to embed a JSON object."""

    @property
    def profile(self) -> ProviderProfile:
        """Read-only identity and credentials."""
        ...

    async def generate_text(
        self,
        *,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return raw model text."""
        ...

    async def ping(self) -> None:
        """Issue one minimal live request; raise on any failure."""
        ...


Provider = StructuredProvider | TextProvider


async def close_provider(provider: Any) -> None:
    """Close provider resources when the provider exposes ``aclose()``."""
    aclose = getattr(provider, "aclose", None)
    if callable(aclose):
        await aclose()
