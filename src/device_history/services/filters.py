"""Structured device filters sent alongside list queries."""

from __future__ import annotations

import json
from typing import Any, List, Union

from sqlalchemy import ColumnElement, exists

from ..models.device import Device
from ..models.interaction import IpObservation
from .errors import InvalidQuery

FILTERABLE_FIELDS = {
    "deviceId": Device.device_id,
    "macAddr": Device.mac_addr,
    "ipAddress": IpObservation.ip,
}


def build_filter_clauses(raw: Union[None, str, list, dict]) -> List[ColumnElement]:
    """
    Translate ``[{"id": field, "value": value}, ...]`` into WHERE clauses.
    
    A list value matches any of its members, a string value is a
    case-insensitive substring match and any other value must match exactly.
    Entries with an empty value are ignored. ``ipAddress`` matches devices
    that were ever seen at that address.
    """
    items = _decode(raw)
    clauses: List[ColumnElement] = []
    for item in items:
        if not isinstance(item, dict) or "id" not in item:
            raise InvalidQuery("Each filter must be an object with 'id' and 'value'")
        field_name = item["id"]
        value = item.get("value")
        if _is_empty(value):
            continue
        column = FILTERABLE_FIELDS.get(field_name)
        if column is None:
            raise InvalidQuery(
                f"Cannot filter by {field_name!r}. Must be one of: {', '.join(sorted(FILTERABLE_FIELDS))}"
            )
        condition = _match(column, value)
        if field_name == "ipAddress":
            condition = exists().where(IpObservation.device_pk == Device.id, condition)
        clauses.append(condition)
    return clauses


def _decode(raw: Union[None, str, list, dict]) -> List[Any]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidQuery(f"filters is not valid JSON: {exc}") from exc
    if isinstance(raw, dict):
        raw = [{"id": key, "value": value} for key, value in raw.items()]
    if not isinstance(raw, list):
        raise InvalidQuery("filters must be a list of {id, value} objects")
    return raw


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and len(value) == 0)


def _match(column, value: Any) -> ColumnElement:
    if isinstance(value, list):
        return column.in_([str(member) for member in value])
    if isinstance(value, str):
        return column.ilike(f"%{_escape_like(value)}%", escape="\\")
    if isinstance(value, dict):
        raise InvalidQuery(f"Unsupported filter value: {value!r}")
    return column == str(value)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
