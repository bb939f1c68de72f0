"""Deterministic fallback payloads, keyed by function name.

The table is static and lookups are pure: the same name always yields the same
(deep-copied) payload. Unknown names resolve to the app-intent payload.
"""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any

DEFAULT_FUNCTION = "analyze_app_intent"

_TABLE: MappingProxyType[str, dict[str, Any]] = MappingProxyType(
    {
        "analyze_app_intent": {
            "category": "utility",
            "primaryPurpose": "Data management system",
            "targetUsers": ["General users"],
            "keyFeatures": ["Create records", "View records", "Edit records"],
            "dataToManage": "Application data",
            "urgency": "medium",
            "complexity": "simple",
        },
        "generate_database_schema": {
            "tableName": "app_data",
            "description": "Application data management",
            "fields": [
                {"name": "id", "label": "ID", "type": "text", "required": True},
                {"name": "title", "label": "Title", "type": "text", "required": True},
                {
                    "name": "description",
                    "label": "Description",
                    "type": "text",
                    "required": False,
                },
                {
                    "name": "created_at",
                    "label": "Created at",
                    "type": "date",
                    "required": True,
                },
            ],
        },
        "generate_ui_configuration": {
            "theme": {
                "primaryColor": "#3b82f6",
                "secondaryColor": "#64748b",
                "backgroundColor": "#ffffff",
            },
            "layout": "list",
            "components": ["Card", "Button", "Input"],
            "interactions": ["click", "submit", "edit"],
        },
    }
)


def known_functions() -> tuple[str, ...]:
    """Function names with a dedicated fallback payload."""
    return tuple(_TABLE)


def lookup(function_name: str) -> dict[str, Any]:
    """Return a fresh copy of the fallback payload for *function_name*."""
    payload = _TABLE.get(function_name, _TABLE[DEFAULT_FUNCTION])
    return copy.deepcopy(payload)
