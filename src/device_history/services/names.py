"""Batch id -> display name lookups for domains and users."""

from __future__ import annotations

from typing import Collection, Dict, Hashable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.domain import Domain
from ..models.interaction import EntityKind
from ..models.user import User


class NameResolver(Protocol):
    def resolve(self, kind: EntityKind, ids: Collection[Hashable]) -> Dict[Hashable, str]:
        """Return names for the ids that exist; unknown ids are simply absent."""
        ...


class DirectoryNameResolver:
    """Resolve names against the ``domains`` and ``users`` tables."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def resolve(self, kind: EntityKind, ids: Collection[Hashable]) -> Dict[Hashable, str]:
        if not ids:
            return {}
        if kind is EntityKind.DOMAIN:
            query = select(Domain.id, Domain.name).where(Domain.id.in_(list(ids)))
        else:
            query = select(User.id, User.username).where(User.id.in_(list(ids)))
        return {row_id: name for row_id, name in self._db.execute(query)}
