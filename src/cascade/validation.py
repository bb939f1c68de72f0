"""Structural validation of candidate payloads against a request schema."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cascade.request import Schema

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of checking one payload against one schema."""

    missing_fields: tuple[str, ...] = ()
    #: (field, expected primitive type) for each present-but-wrong field.
    type_mismatches: tuple[tuple[str, str], ...] = ()

    @property
    def passed(self) -> bool:
        """True when nothing is missing and every declared type matches."""
        return not self.missing_fields and not self.type_mismatches

    def describe(self) -> str:
        """Return a short human-readable summary for logs and errors."""
        if self.passed:
            return "ok"
        parts: list[str] = []
        if self.missing_fields:
            parts.append("missing " + ", ".join(self.missing_fields))
        if self.type_mismatches:
            parts.append(
                "type mismatch "
                + ", ".join(
                    f"{name} (expected {t})" for name, t in self.type_mismatches
                )
            )
        return "; ".join(parts)


def matches_type(value: Any, expected: str) -> bool:
    """Return True when *value* has the JSON primitive type *expected*.

    ``bool`` is not a number, arrays are not objects, and unknown type names
    always match.
    """
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, (list, tuple))
    if expected == "object":
        return isinstance(value, Mapping)
    return True


def validate(data: Any, schema: Schema) -> ValidationReport:
    """Check presence of required fields and declared property types.

    Never raises; a non-mapping payload reports every required field missing.
    """
    if not isinstance(data, Mapping):
        return ValidationReport(missing_fields=tuple(schema.required))

    missing = tuple(name for name in schema.required if name not in data)
    mismatches = tuple(
        (name, expected)
        for name, expected in schema.properties.items()
        if name in data and not matches_type(data[name], expected)
    )
    report = ValidationReport(missing_fields=missing, type_mismatches=mismatches)
    if not report.passed:
        log.debug("Validation failed: %s", report.describe())
    return report
