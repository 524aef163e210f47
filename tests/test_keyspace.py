"""Tests for value parsing helpers."""

from __future__ import annotations

import pytest

from redisdesk.errors import ValidationFailedError
from redisdesk.keyspace import (
    parse_hash_items,
    parse_member_items,
    parse_serialized_length,
    parse_string_value,
    parse_zset_items,
)


def test_hash_items_accept_every_shape() -> None:
    expected = [("a", "1"), ("b", "2")]

    assert parse_hash_items({"a": "1", "b": 2}) == expected
    assert parse_hash_items([["a", "1"], ["b", "2"]]) == expected
    assert parse_hash_items([{"field": "a", "value": "1"}, {"field": "b", "value": "2"}]) == expected


def test_zset_items_accept_every_shape() -> None:
    expected = [("a", 1.0), ("b", 2.5)]

    assert parse_zset_items({"a": 1, "b": 2.5}) == expected
    assert parse_zset_items([["a", "1"], ["b", 2.5]]) == expected
    assert parse_zset_items([{"value": "a", "score": 1}, {"value": "b", "score": 2.5}]) == expected


@pytest.mark.parametrize(
    "value",
    [[], {}, "flat", [["only-one"]], [{"field": "a"}], [[None, "1"]]],
)
def test_hash_items_reject_bad_payloads(value: object) -> None:
    with pytest.raises(ValidationFailedError):
        parse_hash_items(value)


def test_zset_items_reject_bad_scores() -> None:
    with pytest.raises(ValidationFailedError):
        parse_zset_items([["a", "high"]])
    with pytest.raises(ValidationFailedError):
        parse_zset_items([["a", True]])


def test_member_items() -> None:
    assert parse_member_items(["a", 1, 2.5]) == ["a", "1", "2.5"]
    with pytest.raises(ValidationFailedError):
        parse_member_items([])
    with pytest.raises(ValidationFailedError):
        parse_member_items("abc", "set")
    with pytest.raises(ValidationFailedError):
        parse_member_items([True])


def test_string_value_must_be_text() -> None:
    assert parse_string_value("") == ""
    with pytest.raises(ValidationFailedError):
        parse_string_value(12)


def test_parse_serialized_length() -> None:
    assert parse_serialized_length("Value at:0x1 refcount:1 encoding:raw serializedlength:17 lru:0") == 17
    assert parse_serialized_length({"serializedlength": 9, "refcount": 1}) == 9
    assert parse_serialized_length(b"serializedlength:3") == 3
    assert parse_serialized_length("no length here") is None
