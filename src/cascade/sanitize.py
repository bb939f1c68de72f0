"""Normalization of known-unstable payload shapes.

Upstream models drift in predictable ways: a list field comes back as a
single string, a required field is dropped, a number arrives quoted. The
sanitizer repairs exactly these cases so minor drift does not escalate to the
next tier. It runs *before* validation; anything it does not repair is left
for the validator to reject.

Coercions:

- array field holding a scalar -> one-element list
- required field absent or ``None`` -> documented default for its type
- required string field holding a number/boolean -> ``str(value)``
- required number field holding a numeric string -> parsed number
- required boolean field holding ``"true"``/``"false"`` -> ``bool``
- required field of any other wrong type -> documented default
"""

from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from cascade.validation import matches_type

if TYPE_CHECKING:
    from cascade.request import Schema

log = logging.getLogger(__name__)

#: Placeholder used for required string fields with no field-specific default.
PLACEHOLDER_TEXT = "Not specified"

#: Field-specific defaults for fields known to be dropped by upstream models.
FIELD_DEFAULTS: Mapping[str, Any] = {
    "targetUsers": ["General users"],
    "keyFeatures": ["Create records", "View records", "Edit records"],
    "primaryPurpose": "Data management",
    "dataToManage": "Application data",
    "category": "utility",
    "urgency": "medium",
    "complexity": "simple",
    "components": ["Card", "Button", "Input"],
    "interactions": ["click", "submit", "edit"],
    "layout": "list",
}

_FILLED = "filled missing field with default"
_REPLACED = "replaced {} with default"

_TYPE_DEFAULTS: Mapping[str, Any] = {
    "string": PLACEHOLDER_TEXT,
    "number": 0,
    "integer": 0,
    "boolean": False,
    "object": {},
    "array": [PLACEHOLDER_TEXT],
}


@dataclass(frozen=True)
class SanitizeReport:
    """Which fields were rewritten, and how."""

    #: (field, action) pairs in schema order.
    coercions: tuple[tuple[str, str], ...] = ()

    @property
    def changed(self) -> bool:
        """Whether any field was rewritten."""
        return bool(self.coercions)

    def fields(self) -> tuple[str, ...]:
        """Names of the rewritten fields."""
        return tuple(name for name, _ in self.coercions)

    def filled(self) -> tuple[str, ...]:
        """Names of fields that were absent and replaced by a default."""
        return tuple(name for name, action in self.coercions if action == _FILLED)

    def invented(self) -> tuple[str, ...]:
        """Names of fields whose value is now a default, not the provider's.

        Covers absent fields and wrong-typed values that could not be converted.
        """
        return tuple(
            name
            for name, action in self.coercions
            if action == _FILLED
            or (action.startswith("replaced ") and action.endswith(" with default"))
        )


def default_for(name: str, expected: str | None) -> Any:
    """Return a fresh default value for field *name* of type *expected*."""
    if name in FIELD_DEFAULTS:
        value = FIELD_DEFAULTS[name]
        if expected is None or matches_type(value, expected):
            return copy.deepcopy(value)
    if expected is None:
        return PLACEHOLDER_TEXT
    return copy.deepcopy(_TYPE_DEFAULTS.get(expected, PLACEHOLDER_TEXT))


def _coerce_scalar(value: Any, expected: str) -> tuple[bool, Any]:
    """Try a lossless conversion of *value* to *expected*."""
    if expected == "string" and isinstance(value, (int, float)):
        # bool is an int; "True"/"False" is still a faithful rendering.
        return True, str(value)
    if expected in ("number", "integer") and isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            if expected == "integer":
                return False, value
            try:
                return True, float(text)
            except ValueError:
                return False, value
        return True, number
    if expected == "boolean" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return True, lowered == "true"
    return False, value


def sanitize_with_report(
    data: Mapping[str, Any], schema: Schema
) -> tuple[dict[str, Any], SanitizeReport]:
    """Return a repaired copy of *data* and a report of every coercion.

    The input mapping is never mutated.
    """
    result: dict[str, Any] = copy.deepcopy(dict(data))
    coercions: list[tuple[str, str]] = []

    for name, expected in schema.properties.items():
        if expected != "array" or name not in result:
            continue
        value = result[name]
        if isinstance(value, tuple):
            result[name] = list(value)
        elif value is not None and not isinstance(value, list):
            result[name] = [value]
            coercions.append((name, "wrapped scalar in list"))

    for name in schema.required:
        expected = schema.type_of(name)
        value = result.get(name)
        if value is None:
            result[name] = default_for(name, expected)
            coercions.append((name, _FILLED))
            continue
        if expected is None or matches_type(value, expected):
            continue
        converted, new_value = _coerce_scalar(value, expected)
        if converted:
            result[name] = new_value
            coercions.append((name, f"converted to {expected}"))
        else:
            result[name] = default_for(name, expected)
            coercions.append((name, _REPLACED.format(type(value).__name__)))

    report = SanitizeReport(coercions=tuple(coercions))
    if report.changed:
        log.info(
            "Sanitized %d field(s): %s",
            len(coercions),
            ", ".join(f"{n} ({a})" for n, a in coercions),
        )
    return result, report


def sanitize(data: Mapping[str, Any], schema: Schema) -> dict[str, Any]:
    """Return a repaired copy of *data*; see ``sanitize_with_report``."""
    sanitized, _ = sanitize_with_report(data, schema)
    return sanitized
