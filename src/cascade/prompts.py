"""Per-attempt prompt construction.

The caller owns the base prompt. Each attempt appends the same structural
directives and the target schema so that structured and free-text providers
see an identical contract.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cascade.request import GenerationRequest

_DIRECTIVES = (
    "Respond with a single JSON object and nothing else.",
    "Include every required field; never leave a required field empty.",
    "Use the declared type for each field (arrays stay arrays, even with one item).",
    "Prefer specific, complete values over generic placeholders.",
)


def build_enhanced_prompt(request: GenerationRequest, *, attempt: int = 1) -> str:
    """Return the base prompt plus structural directives and the schema.

    Retries add a short reminder so the model does not repeat the same
    malformed answer verbatim.
    """
    schema = request.schema
    lines = [request.prompt.rstrip(), "", "Requirements:"]
    lines.extend(f"- {d}" for d in _DIRECTIVES)
    if schema.required:
        lines.append(f"- Required fields: {', '.join(schema.required)}.")
    if attempt > 1:
        lines.append(
            f"- This is attempt {attempt}; the previous answer was rejected. "
            "Return complete, valid JSON."
        )
    lines.extend(
        [
            "",
            f"Output shape ({request.function_name}):",
            json.dumps(schema.to_json_schema(), indent=2, ensure_ascii=False),
        ]
    )
    return "\n".join(lines)
