"""Tests for decoding truncated JSON documents."""

from __future__ import annotations

import pytest

from reposense.parsing.partial_json import load_partial_json


def test_complete_document_is_decoded_directly() -> None:
    assert load_partial_json('{"a": [1, 2]}') == {"a": [1, 2]}


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("{", {}),
        ('{"items": ["one", "tw', {"items": ["one", "tw"]}),
        ('{"items": ["one"], "next', {"items": ["one"]}),
        ('{"items": ["one"], "next": ', {"items": ["one"]}),
        ('{"a": 1, "b": tr', {"a": 1}),
        ('{"meta": {"score": 7, "level": "Adv', {"meta": {"score": 7, "level": "Adv"}}),
        ('{"quote": "say \\"hi', {"quote": 'say "hi'}),
        ('{"path": "C:\\', {"path": "C:"}),
    ],
)
def test_truncated_documents_are_completed(text: str, expected: object) -> None:
    assert load_partial_json(text) == expected


def test_mismatched_closer_is_rejected() -> None:
    assert load_partial_json('{"a": [1}') is None


def test_hopeless_prefix_returns_none() -> None:
    assert load_partial_json('{"a":') is None
    assert load_partial_json("not json") is None
