"""Request normalization and schema parsing tests."""

from __future__ import annotations

from pydantic import BaseModel
import pytest

from cascade.errors import ConfigurationError, ValidationFailure
from cascade.request import GenerationConfig, Schema, normalize_request
from cascade.result import GenerationResult, Tier
from tests.helpers import APP_INTENT_SCHEMA

pytestmark = pytest.mark.unit


def test_schema_from_function_definition() -> None:
    schema = Schema.from_json_schema(APP_INTENT_SCHEMA)

    assert schema.required[:2] == ("category", "primaryPurpose")
    assert schema.type_of("targetUsers") == "array"
    assert schema.type_of("unknown") is None
    assert schema.description == "Analyze what kind of app the user wants to build"


def test_schema_from_bare_object_schema() -> None:
    schema = Schema.from_json_schema(
        {
            "type": "object",
            "properties": {"layout": {"type": "string"}},
            "required": ["layout"],
        }
    )
    assert schema.required == ("layout",)
    assert schema.description is None


def test_schema_from_pydantic_model() -> None:
    class UIConfig(BaseModel):
        """Visual configuration for the generated app."""

        layout: str
        components: list[str]

    schema = Schema.from_json_schema(UIConfig)

    assert set(schema.required) == {"layout", "components"}
    assert schema.type_of("components") == "array"
    assert schema.description == "Visual configuration for the generated app."


def test_schema_is_read_only() -> None:
    schema = Schema.from_json_schema(APP_INTENT_SCHEMA)
    with pytest.raises(TypeError):
        schema.properties["category"] = "number"  # type: ignore[index]


def test_to_json_schema_returns_an_independent_copy() -> None:
    schema = Schema.from_json_schema(APP_INTENT_SCHEMA)
    exported = schema.to_json_schema()
    exported["required"].append("extra")

    assert "extra" not in schema.to_json_schema()["required"]


@pytest.mark.parametrize(
    "bad",
    [
        {"parameters": "not a schema"},
        {"type": "object", "required": "category"},
        {"type": "object", "properties": ["category"]},
    ],
)
def test_malformed_schema_is_a_configuration_error(bad: dict) -> None:
    with pytest.raises(ConfigurationError):
        Schema.from_json_schema(bad)


def test_normalize_request_strips_function_name_and_defaults_config() -> None:
    request = normalize_request(
        "  analyze_app_intent ", APP_INTENT_SCHEMA, "Track my books"
    )

    assert request.function_name == "analyze_app_intent"
    assert isinstance(request.schema, Schema)
    assert request.config == GenerationConfig()


@pytest.mark.parametrize(
    ("function_name", "prompt"),
    [("", "prompt"), ("   ", "prompt"), ("fn", ""), ("fn", "  \n")],
)
def test_normalize_request_rejects_empty_inputs(function_name: str, prompt: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        normalize_request(function_name, APP_INTENT_SCHEMA, prompt)
    assert exc.value.hint


def test_generation_config_defaults() -> None:
    config = GenerationConfig()
    assert config.max_retries == 3
    assert config.timeout_ms == 30_000
    assert config.fallback_enabled is True
    assert config.quality_threshold == 0.8
    assert config.timeout_s == 30.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": 0},
        {"max_retries": True},
        {"timeout_ms": 0},
        {"timeout_ms": 1.5},
        {"quality_threshold": 1.5},
        {"quality_threshold": float("nan")},
    ],
)
def test_generation_config_rejects_invalid_values(kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        GenerationConfig(**kwargs)


class _Intent(BaseModel):
    category: str
    urgency: str
    keyFeatures: list[str]


def _result(data: dict) -> GenerationResult:
    return GenerationResult(
        data=data,
        provider=Tier.PRIMARY,
        attempts=1,
        confidence=0.9,
        processing_time_ms=12,
    )


def test_as_model_validates_payload_into_pydantic_model() -> None:
    result = _result(
        {"category": "utility", "urgency": "low", "keyFeatures": ["list"], "x": 1}
    )

    intent = result.as_model(_Intent)

    assert intent.category == "utility"
    assert intent.keyFeatures == ["list"]


def test_as_model_reports_missing_fields() -> None:
    result = _result({"category": "utility"})

    with pytest.raises(ValidationFailure) as exc_info:
        result.as_model(_Intent)

    assert set(exc_info.value.report.missing_fields) == {"urgency", "keyFeatures"}
    assert exc_info.value.hint is not None
