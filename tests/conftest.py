"""Pytest configuration and fixtures.

Provides test doubles, environment isolation, logging configuration and
automatic API test skipping. Isolation fixtures are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from cascade.providers.base import ProviderProfile
from cascade.result import Tier

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeStructuredProvider:
    """Structured provider double returning a fixed payload.

    Records every call so tests can assert on budgets and forwarded arguments
    without touching a real SDK.
    """

    name: str = "fake"
    tier: Tier = Tier.PRIMARY
    api_key: str | None = "fake-key-0123456789"
    base_confidence: float | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    calls: int = 0
    pings: int = 0
    closed: bool = False
    last_kwargs: dict[str, Any] | None = None

    @property
    def profile(self) -> ProviderProfile:
        return ProviderProfile(
            name=self.name,
            tier=self.tier,
            model="fake-model",
            api_key=self.api_key,
            base_confidence=self.base_confidence,
        )

    async def generate_structured(
        self,
        *,
        function_name: str,
        prompt: str,
        schema: Any,
        system_message: str | None = None,
        timeout_s: float | None = None,
    ) -> Any:
        self.calls += 1
        self.last_kwargs = {
            "function_name": function_name,
            "prompt": prompt,
            "schema": schema,
            "system_message": system_message,
            "timeout_s": timeout_s,
        }
        return dict(self.payload)

    async def ping(self) -> None:
        self.pings += 1

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeTextProvider:
    """Free-text provider double returning a fixed reply."""

    name: str = "fake-text"
    tier: Tier = Tier.SECONDARY
    api_key: str | None = "fake-text-key-0123456789"
    reply: str = "{}"
    calls: int = 0
    pings: int = 0
    closed: bool = False
    last_kwargs: dict[str, Any] | None = None

    @property
    def profile(self) -> ProviderProfile:
        return ProviderProfile(
            name=self.name,
            tier=self.tier,
            model="fake-text-model",
            api_key=self.api_key,
        )

    async def generate_text(
        self,
        *,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.calls += 1
        self.last_kwargs = {
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return self.reply

    async def ping(self) -> None:
        self.pings += 1

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears OPENAI_*, ANTHROPIC_* and GEMINI_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("OPENAI_", "ANTHROPIC_", "GEMINI_")):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    for name in ("httpx", "httpcore", "openai", "anthropic", "google_genai"):
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# API Test Configuration
# =============================================================================


@pytest.fixture
def openai_api_key():
    """Return OPENAI_API_KEY or skip the test if unavailable."""
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        pytest.skip("OPENAI_API_KEY not set")
    return key


@pytest.fixture
def gemini_api_key():
    """Return GEMINI_API_KEY or skip the test if unavailable."""
    key = os.getenv("GEMINI_API_KEY")
    if not key:
        pytest.skip("GEMINI_API_KEY not set")
    return key
