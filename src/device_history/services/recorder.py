"""
Interaction recorder: appends user/domain accesses and IP observations to devices.

Each entity owns exactly one entry per device. The entry is created with a
conditional insert and the access time is appended as its own row, so
concurrent recordings on the same device never overwrite each other. The
whole recording, including an auto-registration, commits as one transaction.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import insert_ignore
from ..models.device import Device
from ..models.interaction import DeviceEntity, EntityKind, EntityTimestamp, IpObservation
from .errors import (
    CapacityExceeded,
    DeviceHistoryError,
    DeviceUnavailable,
    InvalidQuery,
    StorageUnavailable,
)
from .registry import DeviceRegistry

LOGGER = logging.getLogger(__name__)

EntityId = Union[uuid.UUID, str]

# A concurrent auto-registration of the same device id is retried once
_MAX_ATTEMPTS = 2


class InteractionRecorder:
    def __init__(self, db: Session, registry: DeviceRegistry) -> None:
        self._db = db
        self._registry = registry

    def record_user_access(
        self,
        device_id: str,
        user_id: EntityId,
        ip: str,
        mac_addr: str,
        now: Optional[int] = None,
    ) -> Device:
        return self.record_access(EntityKind.USER, device_id, user_id, ip, mac_addr, now)

    def record_domain_access(
        self,
        device_id: str,
        domain_id: EntityId,
        ip: str,
        mac_addr: str,
        now: Optional[int] = None,
    ) -> Device:
        return self.record_access(EntityKind.DOMAIN, device_id, domain_id, ip, mac_addr, now)

    def record_access(
        self,
        kind: EntityKind,
        device_id: str,
        entity_id: EntityId,
        ip: str,
        mac_addr: str,
        now: Optional[int] = None,
    ) -> Device:
        """
        Record that ``entity_id`` used ``device_id`` from ``ip`` at ``now``.
        
        Unknown devices are registered on the fly with ``mac_addr``.
        
        Raises:
            DeviceUnavailable: if the device had to be registered and could not be
            StorageUnavailable: if the store failed; nothing was written
        """
        entity_uuid = _as_uuid(entity_id)
        timestamp = int(time.time()) if now is None else int(now)

        attempt = 1
        while True:
            try:
                device = self._write(kind, device_id, entity_uuid, ip, mac_addr, timestamp)
                self._db.commit()
            except IntegrityError as exc:
                self._db.rollback()
                if attempt >= _MAX_ATTEMPTS:
                    raise StorageUnavailable(f"Could not record access on device {device_id}") from exc
                attempt += 1
                LOGGER.info("Device %s was registered concurrently; retrying", device_id)
                continue
            except DeviceHistoryError:
                self._db.rollback()
                raise
            except SQLAlchemyError as exc:
                self._db.rollback()
                LOGGER.exception("Failed to record %s access on device %s", kind.value, device_id)
                raise StorageUnavailable(f"Could not record access on device {device_id}") from exc

            LOGGER.debug("Recorded %s %s on device %s at %d", kind.value, entity_uuid, device_id, timestamp)
            return device

    def _write(
        self,
        kind: EntityKind,
        device_id: str,
        entity_id: uuid.UUID,
        ip: str,
        mac_addr: str,
        timestamp: int,
    ) -> Device:
        device = self._registry.find_by_device_id(device_id)
        if device is None:
            device = self._auto_register(device_id, mac_addr)

        insert_ignore(self._db, DeviceEntity, device_pk=device.id, kind=kind.value, entity_id=entity_id)
        entry_id = self._db.scalar(
            select(DeviceEntity.id).where(
                DeviceEntity.device_pk == device.id,
                DeviceEntity.kind == kind.value,
                DeviceEntity.entity_id == entity_id,
            )
        )
        self._db.add(EntityTimestamp(entry_id=entry_id, timestamp=timestamp))
        self._db.add(IpObservation(device_pk=device.id, ip=ip, timestamp=timestamp))
        self._db.execute(
            update(Device)
            .where(Device.id == device.id)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        self._db.flush()
        return device

    def _auto_register(self, device_id: str, mac_addr: str) -> Device:
        try:
            device = self._registry.create(device_id, mac_addr)
        except CapacityExceeded as exc:
            raise DeviceUnavailable(device_id, exc) from exc
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise DeviceUnavailable(device_id, exc) from exc
        LOGGER.info("Auto-registered device %s (mac=%s)", device_id, mac_addr)
        return device


def _as_uuid(value: EntityId) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise InvalidQuery(f"Invalid entity id: {value!r}") from exc
