from __future__ import annotations

import pytest

from device_history.services.errors import InvalidQuery
from device_history.services.filters import build_filter_clauses


def _sql(clause) -> str:
    return str(clause.compile(compile_kwargs={"literal_binds": True}))


def test_no_filters_yield_no_clauses() -> None:
    assert build_filter_clauses(None) == []
    assert build_filter_clauses("") == []
    assert build_filter_clauses("[]") == []


def test_empty_values_are_ignored() -> None:
    clauses = build_filter_clauses('[{"id": "deviceId", "value": ""}, {"id": "macAddr", "value": []}]')

    assert clauses == []


def test_string_value_is_a_substring_match() -> None:
    (clause,) = build_filter_clauses([{"id": "deviceId", "value": "hmd"}])

    sql = _sql(clause).lower()
    assert "devices.device_id" in sql
    assert "%hmd%" in sql


def test_like_wildcards_in_values_are_escaped() -> None:
    (clause,) = build_filter_clauses([{"id": "macAddr", "value": "50%_"}])

    assert clause.right.value == "%50\\%\\_%"


def test_list_value_matches_any_member() -> None:
    (clause,) = build_filter_clauses([{"id": "deviceId", "value": ["a", "b"]}])

    assert " IN " in _sql(clause).upper()


def test_ip_address_filter_is_an_exists_subquery() -> None:
    (clause,) = build_filter_clauses({"ipAddress": "10.0.0"})

    assert "EXISTS" in _sql(clause).upper()
    assert "ip_observations" in _sql(clause)


@pytest.mark.parametrize(
    "raw",
    [
        "{oops",
        '"deviceId"',
        '[{"value": "x"}]',
        '[{"id": "password", "value": "x"}]',
        '[{"id": "deviceId", "value": {"$ne": null}}]',
    ],
)
def test_malformed_filters_are_rejected(raw: str) -> None:
    with pytest.raises(InvalidQuery):
        build_filter_clauses(raw)
