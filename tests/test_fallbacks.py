"""Deterministic fallback table and prompt construction tests."""

from __future__ import annotations

import json

import pytest

from cascade import fallbacks
from cascade.prompts import build_enhanced_prompt
from cascade.request import normalize_request
from tests.helpers import APP_INTENT_SCHEMA

pytestmark = pytest.mark.unit


# =============================================================================
# Fallback table
# =============================================================================


def test_known_functions() -> None:
    assert set(fallbacks.known_functions()) == {
        "analyze_app_intent",
        "generate_database_schema",
        "generate_ui_configuration",
    }


def test_app_intent_payload_is_complete() -> None:
    payload = fallbacks.lookup("analyze_app_intent")
    for key in ("category", "primaryPurpose", "targetUsers", "keyFeatures", "dataToManage"):
        assert key in payload
    assert isinstance(payload["targetUsers"], list)


def test_database_schema_payload_has_typed_fields() -> None:
    payload = fallbacks.lookup("generate_database_schema")
    assert payload["tableName"]
    assert all({"name", "type", "required"} <= set(f) for f in payload["fields"])


def test_unknown_function_uses_app_intent_payload() -> None:
    assert fallbacks.lookup("summarize_meeting") == fallbacks.lookup(
        fallbacks.DEFAULT_FUNCTION
    )


def test_lookup_is_idempotent_and_returns_copies() -> None:
    first = fallbacks.lookup("generate_ui_configuration")
    first["components"].append("Modal")
    first["theme"]["primaryColor"] = "#000000"

    second = fallbacks.lookup("generate_ui_configuration")

    assert "Modal" not in second["components"]
    assert second["theme"]["primaryColor"] == "#3b82f6"
    assert second == fallbacks.lookup("generate_ui_configuration")


# =============================================================================
# Prompts
# =============================================================================


def _request():
    return normalize_request(
        "analyze_app_intent", APP_INTENT_SCHEMA, "I want to track my reading list."
    )


def test_prompt_keeps_base_prompt_and_lists_required_fields() -> None:
    prompt = build_enhanced_prompt(_request())

    assert prompt.startswith("I want to track my reading list.")
    assert "Required fields: category, primaryPurpose, targetUsers" in prompt
    assert "attempt" not in prompt.lower().split("output shape")[0]


def test_prompt_ends_with_the_json_schema() -> None:
    prompt = build_enhanced_prompt(_request())
    schema_text = prompt[prompt.rfind("\n{") + 1 :]

    assert json.loads(schema_text)["required"][0] == "category"


def test_retry_prompt_adds_a_reminder() -> None:
    assert "This is attempt 2" in build_enhanced_prompt(_request(), attempt=2)
