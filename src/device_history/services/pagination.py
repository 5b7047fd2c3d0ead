"""
Pagination layer shared by the history views.

``paginate`` sorts a prepared ``Select`` and either returns every row (no
``page`` requested) or one ``Page`` slice with its counts.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Collection, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from .errors import InvalidQuery

T = TypeVar("T")

SortSpec = List[Tuple[str, int]]

DEFAULT_SORT: SortSpec = [("updatedAt", -1)]

_ASCENDING = {"asc", "ascending", "1"}
_DESCENDING = {"desc", "descending", "-1"}


@dataclass
class Page(Generic[T]):
    docs: List[T]
    total_docs: int
    limit: int
    page: int
    total_pages: int

    @property
    def paging_counter(self) -> int:
        return (self.page - 1) * self.limit + 1

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def prev_page(self) -> Optional[int]:
        return self.page - 1 if self.has_prev_page else None

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next_page else None


def parse_sort(raw: Union[None, str, dict], allowed: Collection[str]) -> SortSpec:
    """
    Parse a ``{field: direction}`` sort specification.
    
    ``raw`` may be a JSON string or an already decoded mapping. Directions are
    ``1``/``-1`` or ``"asc"``/``"desc"``. Missing input yields ``DEFAULT_SORT``.
    """
    if raw is None or raw == "":
        return list(DEFAULT_SORT)
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidQuery(f"sort is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict) or not raw:
        raise InvalidQuery("sort must be a non-empty object of field -> direction")

    spec: SortSpec = []
    for field_name, direction in raw.items():
        if field_name not in allowed:
            raise InvalidQuery(f"Cannot sort by {field_name!r}. Must be one of: {', '.join(sorted(allowed))}")
        spec.append((field_name, _direction(field_name, direction)))
    return spec


def _direction(field_name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidQuery(f"Invalid sort direction for {field_name!r}: {value!r}")
    if isinstance(value, (int, float)) and value in (1, -1):
        return int(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _ASCENDING:
            return 1
        if token in _DESCENDING:
            return -1
    raise InvalidQuery(f"Invalid sort direction for {field_name!r}: {value!r}")


def resolve_page(page: Optional[int], limit: Optional[int], default_limit: int) -> Optional[Tuple[int, int]]:
    """Validate ``page``/``limit``; ``None`` means pagination is disabled."""
    if page is None:
        return None
    if page < 1:
        raise InvalidQuery("page must be a positive integer")
    if limit is None:
        limit = default_limit
    if limit < 1:
        raise InvalidQuery("limit must be a positive integer")
    return page, limit


def paginate(
    db: Session,
    stmt: Select,
    *,
    order_by: Sequence[Any],
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Union[Page[Any], List[Any]]:
    """
    Sort ``stmt`` and return either all rows or the requested page.
    
    Args:
        db: Database session
        stmt: Prepared select, without ordering
        order_by: Ordering clauses; must end with a unique key for stable pages
        page: 1-indexed page number, or None to disable pagination
        limit: Page size, required to be positive when ``page`` is given
        
    Returns:
        A list of rows when unpaginated, otherwise a ``Page`` of rows
    """
    ordered = stmt.order_by(*order_by)
    if page is None:
        return list(db.execute(ordered).all())
    if limit is None or limit < 1:
        raise InvalidQuery("limit must be a positive integer")

    total_docs = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = db.execute(ordered.offset((page - 1) * limit).limit(limit)).all()
    return Page(
        docs=list(rows),
        total_docs=total_docs,
        limit=limit,
        page=page,
        total_pages=math.ceil(total_docs / limit),
    )
