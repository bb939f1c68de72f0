"""Test helpers (small, reusable doubles and payloads).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off provider subclasses as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import Any

from tests.conftest import FakeStructuredProvider, FakeTextProvider

APP_INTENT_SCHEMA: dict[str, Any] = {
    "description": "Analyze what kind of app the user wants to build",
    "parameters": {
        "type": "object",
        "properties": {
            "category": {"type": "string"},
            "primaryPurpose": {"type": "string"},
            "targetUsers": {"type": "array", "items": {"type": "string"}},
            "keyFeatures": {"type": "array", "items": {"type": "string"}},
            "dataToManage": {"type": "string"},
            "urgency": {"type": "string"},
            "complexity": {"type": "string"},
            "summary": {"type": "string"},
        },
        "required": [
            "category",
            "primaryPurpose",
            "targetUsers",
            "keyFeatures",
            "dataToManage",
        ],
    },
}

# Eight keys: primary scores 0.95, secondary 0.85.
GOOD_INTENT: dict[str, Any] = {
    "category": "productivity",
    "primaryPurpose": "Track books to read",
    "targetUsers": ["Readers"],
    "keyFeatures": ["Add book", "Mark as read"],
    "dataToManage": "Books",
    "urgency": "low",
    "complexity": "simple",
    "summary": "A reading list tracker",
}


def prose_wrapped(payload: dict[str, Any]) -> str:
    """Render *payload* the way chatty text models answer."""
    return (
        "Sure! Here is the analysis you asked for:\n"
        f"```json\n{json.dumps(payload, indent=2)}\n```\n"
        "Let me know if you need anything else."
    )


@dataclass
class ScriptedStructuredProvider(FakeStructuredProvider):
    """FakeStructuredProvider that replays a scripted sequence.

    Each call pops the next item: a payload (dict or JSON string) is returned,
    an exception is raised. An empty script returns ``payload``.
    """

    script: list[dict[str, Any] | str | BaseException] = field(default_factory=list)

    async def generate_structured(self, **kwargs: Any) -> Any:
        await super().generate_structured(**kwargs)
        if not self.script:
            return dict(self.payload)
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class ScriptedTextProvider(FakeTextProvider):
    """FakeTextProvider that replays scripted replies or exceptions."""

    script: list[str | BaseException] = field(default_factory=list)

    async def generate_text(self, **kwargs: Any) -> str:
        await super().generate_text(**kwargs)
        if not self.script:
            return self.reply
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class HangingProvider(FakeStructuredProvider):
    """Structured provider whose calls never resolve.

    Counts how often an in-flight call was cancelled so tests can prove the
    deadline aborts the call instead of abandoning it.
    """

    started: asyncio.Event = field(default_factory=asyncio.Event)
    cancelled: int = 0

    async def generate_structured(self, **kwargs: Any) -> Any:
        await super().generate_structured(**kwargs)
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        raise AssertionError("unreachable")


@dataclass
class PingFailingProvider(FakeStructuredProvider):
    """Structured provider whose availability probe raises."""

    ping_error: BaseException = field(
        default_factory=lambda: ConnectionError("connection refused")
    )

    async def ping(self) -> None:
        self.pings += 1
        raise self.ping_error


class StatusError(Exception):
    """SDK-style exception carrying an HTTP status code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code
