"""Real API integration tests.

These tests make real OpenAI/Gemini calls and are intentionally compact:
- ENABLE_API_TESTS=1 is required to run any API tests
- OPENAI_API_KEY / GEMINI_API_KEY are required per provider fixture
"""

from __future__ import annotations

import pytest

import cascade
from cascade.config import Config
from cascade.orchestrator import Orchestrator
from cascade.providers import GeminiProvider
from cascade.request import GenerationConfig, normalize_request
from cascade.result import Tier
from tests.helpers import APP_INTENT_SCHEMA

pytestmark = [pytest.mark.api, pytest.mark.slow]

_PROMPT = "I want an app to keep track of the books I want to read."
_REQUIRED = APP_INTENT_SCHEMA["parameters"]["required"]


@pytest.mark.asyncio
async def test_openai_primary_answers_directly(openai_api_key: str) -> None:
    result = await cascade.generate(
        "analyze_app_intent",
        APP_INTENT_SCHEMA,
        _PROMPT,
        config=Config(primary_api_key=openai_api_key, secondary=None),
    )

    assert result.provider is Tier.PRIMARY
    assert set(_REQUIRED) <= set(result.data)


@pytest.mark.asyncio
async def test_gemini_secondary_extracts_json_from_text(gemini_api_key: str) -> None:
    secondary = GeminiProvider(gemini_api_key)
    orchestrator = Orchestrator(None, secondary)
    request = normalize_request(
        "analyze_app_intent",
        APP_INTENT_SCHEMA,
        _PROMPT,
        config=GenerationConfig(quality_threshold=0.7),
    )
    try:
        result = await orchestrator.generate(request)
    finally:
        await cascade.close_orchestrator(orchestrator)

    assert result.provider is Tier.SECONDARY
    assert set(_REQUIRED) <= set(result.data)


@pytest.mark.asyncio
async def test_health_check_against_live_providers(
    openai_api_key: str, gemini_api_key: str
) -> None:
    report = await cascade.health_check(
        Config(primary_api_key=openai_api_key, secondary_api_key=gemini_api_key)
    )
    assert report.primary
    assert report.secondary
