"""Device summary shape and the storage queries feeding the history pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Collection, Dict, List, Optional, Sequence

from sqlalchemy import ColumnElement, and_, exists, func, select
from sqlalchemy.orm import Session

from ..models.device import Device
from ..models.interaction import DeviceEntity, EntityKind, EntityTimestamp, IpObservation
from .history import HistoryEntry, Row


@dataclass(frozen=True)
class IpRecord:
    ip: str
    timestamp: int


@dataclass
class DeviceSummary:
    """Aggregated, scope-restricted view of one device."""

    id: uuid.UUID
    device_id: str
    mac_addr: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    unique_domain_count: int = 0
    unique_user_count: int = 0
    ip_address: List[IpRecord] = field(default_factory=list)
    domains_history: List[HistoryEntry] = field(default_factory=list)
    users_history: List[HistoryEntry] = field(default_factory=list)


def _in_scope(kind: EntityKind, ids: Collection[uuid.UUID]) -> ColumnElement:
    return and_(DeviceEntity.kind == kind.value, DeviceEntity.entity_id.in_(list(ids)))


def scoped_entry_exists(kind: EntityKind, ids: Collection[uuid.UUID]) -> ColumnElement:
    """True for devices holding at least one ``kind`` entry whose id is in ``ids``."""
    return exists().where(DeviceEntity.device_pk == Device.id, _in_scope(kind, ids))


def scoped_entry_count(kind: EntityKind, ids: Collection[uuid.UUID]):
    """Correlated count of distinct in-scope ``kind`` entries on each device."""
    return (
        select(func.count(DeviceEntity.id))
        .where(DeviceEntity.device_pk == Device.id, _in_scope(kind, ids))
        .correlate(Device)
        .scalar_subquery()
    )


def load_entity_rows(
    db: Session,
    device_pks: Sequence[uuid.UUID],
    kind: EntityKind,
    ids: Collection[uuid.UUID],
) -> List[Row]:
    """
    Expand in-scope entries of ``device_pks`` into ``(device_pk, entity_id, timestamp)`` rows.
    
    Rows come back in entry order, then timestamp insertion order; an entry
    without timestamps yields one row with a ``None`` timestamp.
    """
    if not device_pks or not ids:
        return []
    query = (
        select(DeviceEntity.device_pk, DeviceEntity.entity_id, EntityTimestamp.timestamp)
        .outerjoin(EntityTimestamp, EntityTimestamp.entry_id == DeviceEntity.id)
        .where(DeviceEntity.device_pk.in_(list(device_pks)), _in_scope(kind, ids))
        .order_by(DeviceEntity.id, EntityTimestamp.id)
    )
    return [tuple(row) for row in db.execute(query)]


def load_ip_history(db: Session, device_pks: Sequence[uuid.UUID]) -> Dict[uuid.UUID, List[IpRecord]]:
    history: Dict[uuid.UUID, List[IpRecord]] = {pk: [] for pk in device_pks}
    if not device_pks:
        return history
    query = (
        select(IpObservation.device_pk, IpObservation.ip, IpObservation.timestamp)
        .where(IpObservation.device_pk.in_(list(device_pks)))
        .order_by(IpObservation.id)
    )
    for device_pk, ip, timestamp in db.execute(query):
        history[device_pk].append(IpRecord(ip, timestamp))
    return history
