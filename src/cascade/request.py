"""Request normalization: immutable generation requests."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from cascade.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {"string", "number", "integer", "boolean", "array", "object"}
)


@dataclass(frozen=True)
class Schema:
    """Declared shape of a structured payload.

    Only the parts the validator and sanitizer act on are modelled: the
    required field names and each property's primitive type. The original
    JSON schema is kept in ``raw`` so providers can forward it verbatim.
    """

    required: tuple[str, ...] = ()
    #: field name -> primitive type ("string", "array", ...).
    properties: Mapping[str, str] = field(default_factory=dict)
    description: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze mappings so a schema can be shared across concurrent calls."""
        object.__setattr__(self, "required", tuple(self.required))
        object.__setattr__(
            self, "properties", MappingProxyType(dict(self.properties))
        )
        object.__setattr__(self, "raw", MappingProxyType(dict(self.raw)))

    @classmethod
    def from_json_schema(cls, schema: Mapping[str, Any] | type[BaseModel]) -> Schema:
        """Build a Schema from a JSON schema or a function-calling definition.

        Accepts a bare object schema (``{"type": "object",
        "properties": ..., "required": [...]}``), the function-calling shape
        ``{"description": ..., "parameters": {...}}``, or a Pydantic model class.
        """
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            schema = schema.model_json_schema()
        if not isinstance(schema, dict) and not hasattr(schema, "get"):
            raise ConfigurationError(
                f"schema must be a mapping, got {type(schema).__name__}",
                hint="Pass a JSON schema dict with 'properties' and 'required'.",
            )

        description = schema.get("description")
        params = schema.get("parameters", schema)
        if not isinstance(params, dict):
            raise ConfigurationError(
                "schema 'parameters' must be an object schema",
                hint="Use {'parameters': {'type': 'object', 'properties': {...}}}.",
            )

        raw_required = params.get("required", [])
        if not isinstance(raw_required, (list, tuple)) or not all(
            isinstance(name, str) for name in raw_required
        ):
            raise ConfigurationError(
                "schema 'required' must be a list of field names",
                hint="Example: 'required': ['category', 'targetUsers'].",
            )

        raw_props = params.get("properties", {})
        if not isinstance(raw_props, dict):
            raise ConfigurationError(
                "schema 'properties' must be a mapping of field -> definition",
            )
        properties: dict[str, str] = {}
        for name, definition in raw_props.items():
            declared = (
                definition.get("type") if isinstance(definition, dict) else None
            )
            if isinstance(declared, str):
                properties[name] = declared

        return cls(
            required=tuple(raw_required),
            properties=properties,
            description=description if isinstance(description, str) else None,
            raw=params,
        )

    def type_of(self, name: str) -> str | None:
        """Return the declared primitive type for *name*, if any."""
        return self.properties.get(name)

    def to_json_schema(self) -> dict[str, Any]:
        """Return a plain JSON schema suitable for provider APIs."""
        if self.raw:
            return _thaw(self.raw)
        return {
            "type": "object",
            "properties": {name: {"type": t} for name, t in self.properties.items()},
            "required": list(self.required),
        }


def _thaw(value: Any) -> Any:
    if isinstance(value, (dict, MappingProxyType)):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class GenerationConfig:
    """Per-request budget and acceptance policy."""

    #: Attempts allowed per tier (primary and secondary each get this many).
    max_retries: int = 3
    #: Deadline for a single provider call, in milliseconds.
    timeout_ms: int = 30_000
    #: When False, a failed primary tier goes straight to the deterministic table.
    fallback_enabled: bool = True
    #: Minimum confidence needed to accept a provider result.
    quality_threshold: float = 0.8

    def __post_init__(self) -> None:
        """Validate numeric fields early for clear errors."""
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ConfigurationError(
                f"max_retries must be an integer, got {self.max_retries!r}"
            )
        if self.max_retries < 1:
            raise ConfigurationError(
                f"max_retries must be ≥ 1, got {self.max_retries}",
                hint="This is the attempt budget for each provider tier.",
            )
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int):
            raise ConfigurationError(
                f"timeout_ms must be an integer, got {self.timeout_ms!r}"
            )
        if self.timeout_ms <= 0:
            raise ConfigurationError(
                f"timeout_ms must be > 0, got {self.timeout_ms}",
                hint="This is the deadline for one provider call in milliseconds.",
            )
        threshold = self.quality_threshold
        if (
            isinstance(threshold, bool)
            or not isinstance(threshold, (int, float))
            or math.isnan(threshold)
            or not 0.0 <= threshold <= 1.0
        ):
            raise ConfigurationError(
                f"quality_threshold must be within [0, 1], got {threshold!r}",
            )

    @property
    def timeout_s(self) -> float:
        """Per-call deadline in seconds."""
        return self.timeout_ms / 1000.0


@dataclass(frozen=True)
class GenerationRequest:
    """Normalized structured generation request."""

    function_name: str
    schema: Schema
    prompt: str
    system_message: str | None = None
    config: GenerationConfig = field(default_factory=GenerationConfig)


def normalize_request(
    function_name: str,
    schema: Schema | Mapping[str, Any] | type[BaseModel],
    prompt: str,
    *,
    system_message: str | None = None,
    config: GenerationConfig | None = None,
) -> GenerationRequest:
    """Validate and normalize inputs into a GenerationRequest.

    Args:
        function_name: Identifier of the structured output shape.
        schema: A ``Schema``, a JSON schema / function-calling definition,
            or a Pydantic model class.
        prompt: Natural-language instruction.
        system_message: Optional system-level instruction.
        config: Optional budget/acceptance policy.

    Returns:
        Immutable GenerationRequest.

    Raises:
        ConfigurationError: If any input is malformed.
    """
    if not isinstance(function_name, str) or not function_name.strip():
        raise ConfigurationError(
            "function_name is empty or whitespace-only",
            hint="Pass the identifier of the output shape, e.g. 'analyze_app_intent'.",
        )
    if not isinstance(prompt, str) or not prompt.strip():
        raise ConfigurationError(
            "prompt is empty or whitespace-only",
            hint="The prompt must be a non-empty string.",
        )
    if system_message is not None and not isinstance(system_message, str):
        raise ConfigurationError(
            "system_message must be a string",
            hint="Pass system_message='You are a product analyst.'",
        )

    if not isinstance(schema, Schema):
        schema = Schema.from_json_schema(schema)

    return GenerationRequest(
        function_name=function_name.strip(),
        schema=schema,
        prompt=prompt,
        system_message=system_message,
        config=config or GenerationConfig(),
    )
