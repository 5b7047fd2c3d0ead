"""
Visibility scopes: which domains and users a caller may see.

The aggregation services only consume a ``VisibilityScope``; how it is
computed belongs to a ``ScopeProvider``. ``DirectoryScopeProvider`` is the
default provider backed by the domain/department/user tables.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.domain import Domain
from ..models.user import User

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisibilityScope:
    domain_ids: FrozenSet[uuid.UUID] = field(default_factory=frozenset)
    user_ids: FrozenSet[uuid.UUID] = field(default_factory=frozenset)

    @classmethod
    def of(cls, domain_ids: Iterable[uuid.UUID] = (), user_ids: Iterable[uuid.UUID] = ()) -> "VisibilityScope":
        return cls(frozenset(domain_ids), frozenset(user_ids))


class ScopeProvider(Protocol):
    def scope_for(self, caller: User) -> VisibilityScope:
        ...


class DirectoryScopeProvider:
    """
    Scope derived from the caller's role.

    Admin roles see every non-archived domain and user of the organization.
    Plain users see their own domain and the users of their own department,
    or of their domain when they belong to no department.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def scope_for(self, caller: User) -> VisibilityScope:
        if caller.is_admin:
            domain_ids = self._db.scalars(select(Domain.id).where(Domain.archived.is_(False))).all()
            user_ids = self._db.scalars(select(User.id).where(User.archived.is_(False))).all()
            return VisibilityScope.of(domain_ids, user_ids)

        if caller.domain_id is None:
            LOGGER.warning("User %s has no domain; granting an empty scope", caller.id)
            return VisibilityScope()

        query = select(User.id).where(User.archived.is_(False))
        if caller.department_id is not None:
            query = query.where(User.department_id == caller.department_id)
        else:
            query = query.where(User.domain_id == caller.domain_id)
        return VisibilityScope.of([caller.domain_id], self._db.scalars(query).all())
