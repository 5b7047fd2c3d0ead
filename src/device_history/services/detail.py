"""
Device detail resolver.

A single device's summary is built from two aggregations issued concurrently:
one over its in-scope domain entries and one over its in-scope user entries.
Each runs on a worker thread with its own session, both share one
``Deadline``, and the two partial results are merged by device id. The two
sides may observe slightly different states of the device; that is accepted
for a reporting view.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Collection, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.device import Device
from ..models.interaction import EntityKind
from .deadline import Deadline
from .errors import DeadlineExceeded, DeviceNotFound, StorageUnavailable
from .history import HistoryEntry, flatten_history, group_rows
from .names import DirectoryNameResolver, NameResolver
from .scope import VisibilityScope
from .summary import DeviceSummary, IpRecord, load_entity_rows, load_ip_history

LOGGER = logging.getLogger(__name__)


@dataclass
class PartialSummary:
    """One side of a detail lookup: a device and its history of one kind."""

    id: uuid.UUID
    device_id: str
    mac_addr: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    ip_address: List[IpRecord]
    unique_count: int = 0
    history: List[HistoryEntry] = field(default_factory=list)


class DeviceDetailResolver:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        name_resolver_factory: Callable[[Session], NameResolver] = DirectoryNameResolver,
        timeout_seconds: Optional[float] = 10.0,
    ) -> None:
        self._session_factory = session_factory
        self._name_resolver_factory = name_resolver_factory
        self._timeout_seconds = timeout_seconds

    async def resolve(
        self,
        device_id: str,
        scope: VisibilityScope,
        deadline: Optional[Deadline] = None,
    ) -> Optional[DeviceSummary]:
        """
        Return the merged summary of ``device_id``.
        
        Returns ``None`` when the device has no in-scope entries of either kind.
        
        Raises:
            DeviceNotFound: if no device is registered as ``device_id``
            DeadlineExceeded: if either side outlives the deadline
            StorageUnavailable: if the store fails
        """
        deadline = deadline or Deadline(self._timeout_seconds)
        tasks = [
            asyncio.ensure_future(
                asyncio.to_thread(self._aggregate_side, device_id, EntityKind.DOMAIN, scope.domain_ids, deadline)
            ),
            asyncio.ensure_future(
                asyncio.to_thread(self._aggregate_side, device_id, EntityKind.USER, scope.user_ids, deadline)
            ),
        ]
        try:
            done, pending = await asyncio.wait(
                tasks,
                timeout=deadline.remaining(),
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except asyncio.CancelledError:
            _abort(deadline, tasks)
            raise

        failures = [task.exception() for task in done if task.exception() is not None]
        if pending or failures:
            # Stop the surviving side at its next checkpoint
            _abort(deadline, pending)
        if failures:
            LOGGER.warning("Detail lookup for device %s failed: %s", device_id, failures[0])
            raise failures[0]
        if pending:
            LOGGER.warning("Detail lookup for device %s exceeded its deadline", device_id)
            raise DeadlineExceeded(f"Detail lookup for device {device_id} timed out")

        domain_side, user_side = (task.result() for task in tasks)
        return merge_summaries(domain_side, user_side)

    def _aggregate_side(
        self,
        device_id: str,
        kind: EntityKind,
        ids: Collection[uuid.UUID],
        deadline: Deadline,
    ) -> Optional[PartialSummary]:
        try:
            with self._session_factory() as db:
                deadline.check(f"{kind.value} device lookup")
                device = db.scalars(select(Device).where(Device.device_id == device_id)).first()
                if device is None:
                    raise DeviceNotFound(device_id)

                deadline.check(f"{kind.value} entry grouping")
                group = group_rows(load_entity_rows(db, [device.id], kind, ids)).get(device.id)
                if group is None:
                    return None

                deadline.check(f"{kind.value} name resolution")
                names = self._name_resolver_factory(db).resolve(kind, group.entity_ids())

                deadline.check(f"{kind.value} ip history")
                ip_history = load_ip_history(db, [device.id])[device.id]
                return PartialSummary(
                    id=device.id,
                    device_id=device.device_id,
                    mac_addr=device.mac_addr,
                    created_at=device.created_at,
                    updated_at=device.updated_at,
                    ip_address=ip_history,
                    unique_count=group.unique_count,
                    history=flatten_history(group, names),
                )
        except SQLAlchemyError as exc:
            LOGGER.exception("Detail %s aggregation failed for device %s", kind.value, device_id)
            raise StorageUnavailable(f"Could not aggregate device {device_id}") from exc


def _abort(deadline: Deadline, tasks: Iterable["asyncio.Future"]) -> None:
    deadline.cancel()
    for task in tasks:
        task.cancel()


def merge_summaries(
    domain_side: Optional[PartialSummary],
    user_side: Optional[PartialSummary],
) -> Optional[DeviceSummary]:
    """Merge the domain-scoped and user-scoped halves of one device."""
    base = domain_side or user_side
    if base is None:
        return None
    if domain_side and user_side and domain_side.id != user_side.id:
        LOGGER.warning(
            "Detail halves disagree on device record (%s != %s); dropping user half",
            domain_side.id,
            user_side.id,
        )
        user_side = None

    return DeviceSummary(
        id=base.id,
        device_id=base.device_id,
        mac_addr=base.mac_addr,
        created_at=base.created_at,
        updated_at=base.updated_at,
        unique_domain_count=domain_side.unique_count if domain_side else 0,
        unique_user_count=user_side.unique_count if user_side else 0,
        ip_address=base.ip_address,
        domains_history=domain_side.history if domain_side else [],
        users_history=user_side.history if user_side else [],
    )
