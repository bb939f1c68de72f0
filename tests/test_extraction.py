"""JSON extraction from free-form model output."""

from __future__ import annotations

import json

from hypothesis import given
from hypothesis import strategies as st
import pytest

from cascade.errors import ParseFailure
from cascade.extraction import coerce_structured, extract_json_object
from tests.helpers import GOOD_INTENT, prose_wrapped

pytestmark = pytest.mark.unit


def test_bare_object() -> None:
    assert extract_json_object('  {"a": 1}  ') == {"a": 1}


def test_object_inside_markdown_fence_and_prose() -> None:
    assert extract_json_object(prose_wrapped(GOOD_INTENT)) == GOOD_INTENT


def test_braces_inside_strings_do_not_confuse_the_scanner() -> None:
    text = 'Result: {"pattern": "a{b}c", "note": "quote \\" and }"} trailing }'
    assert extract_json_object(text) == {"pattern": "a{b}c", "note": 'quote " and }'}


def test_unmatched_quote_in_leading_prose_is_ignored() -> None:
    text = 'The user\'s "idea is: {"category": "finance"}'
    assert extract_json_object(text) == {"category": "finance"}


def test_first_complete_object_wins() -> None:
    assert extract_json_object('{"first": 1} and then {"second": 2}') == {"first": 1}


def test_inner_object_recovered_from_invalid_balanced_outer_object() -> None:
    assert extract_json_object('Result {note: {"a": 1}}') == {"a": 1}


def test_inner_object_recovered_from_truncated_outer_object() -> None:
    text = 'Partial: {"outer": {"inner": true}'
    assert extract_json_object(text) == {"inner": True}


def test_top_level_array_is_not_an_object() -> None:
    with pytest.raises(ParseFailure):
        extract_json_object("[1, 2, 3]")


@pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken: json"])
def test_parse_failure(text: str) -> None:
    with pytest.raises(ParseFailure):
        extract_json_object(text)


def test_coerce_structured_accepts_dicts_strings_and_bytes() -> None:
    assert coerce_structured({"a": 1}) == {"a": 1}
    assert coerce_structured('{"a": 1}') == {"a": 1}
    assert coerce_structured(b'{"a": 1}') == {"a": 1}


def test_coerce_structured_rejects_other_types() -> None:
    with pytest.raises(ParseFailure):
        coerce_structured(42)


@given(
    st.dictionaries(
        st.text(max_size=8), st.integers() | st.text(max_size=12), max_size=5
    ),
    st.text(alphabet=st.characters(exclude_characters="{}"), max_size=30),
)
def test_object_survives_arbitrary_surrounding_prose(payload: dict, prose: str) -> None:
    text = f"{prose}\n{json.dumps(payload)}\nThanks!"
    assert extract_json_object(text) == payload
