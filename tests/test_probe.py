"""Availability probe tests."""

from __future__ import annotations

import asyncio

import pytest

from cascade.probe import available, probe
from tests.conftest import FakeStructuredProvider
from tests.helpers import PingFailingProvider, StatusError

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_reachable_provider_is_available() -> None:
    provider = FakeStructuredProvider()

    result = await probe(provider)

    assert result.available
    assert result.latency_ms is not None
    assert provider.pings == 1


@pytest.mark.asyncio
async def test_missing_provider_is_unavailable() -> None:
    result = await probe(None)
    assert not result.available
    assert result.reason == "not configured"


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key", [None, "", "   ", " padded-key "])
async def test_bad_credential_shape_skips_the_live_request(api_key: str | None) -> None:
    provider = FakeStructuredProvider(api_key=api_key)

    result = await probe(provider)

    assert not result.available
    assert provider.pings == 0


@pytest.mark.asyncio
async def test_key_prefix_is_checked() -> None:
    from cascade.providers.openai import OpenAIProvider

    result = await probe(OpenAIProvider("not-an-openai-key-1234567890"))

    assert not result.available
    assert "sk-" in result.reason


@pytest.mark.asyncio
async def test_failing_ping_is_reported_not_raised() -> None:
    provider = PingFailingProvider(ping_error=StatusError("unauthorized", 401))

    result = await probe(provider)

    assert not result.available
    assert result.reason.startswith("authentication_failure")
    assert await available(provider) is False


@pytest.mark.asyncio
async def test_slow_ping_times_out() -> None:
    class SlowPing(FakeStructuredProvider):
        async def ping(self) -> None:
            await asyncio.sleep(10)

    result = await probe(SlowPing(), timeout_s=0.01)

    assert not result.available
    assert "timed out" in result.reason


@pytest.mark.asyncio
async def test_results_are_not_cached() -> None:
    provider = FakeStructuredProvider()
    await probe(provider)
    await probe(provider)
    assert provider.pings == 2
