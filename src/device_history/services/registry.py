"""
Device registry: creates and looks up device records under a global ceiling.

The ceiling is enforced with a shared counter row that is reserved by a single
``UPDATE ... WHERE registered < limit`` statement, so concurrent registrations
can never push the number of devices past the limit.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import insert_ignore
from ..models.capacity import COUNTER_ROW_ID, DeviceCapacity
from ..models.device import Device
from .errors import CapacityExceeded, DeviceAlreadyRegistered, StorageUnavailable

LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    def __init__(self, db: Session, device_limit: int) -> None:
        self._db = db
        self._limit = device_limit

    def find_by_device_id(self, device_id: str) -> Optional[Device]:
        """Return the device registered as ``device_id``, or ``None``."""
        return self._db.scalars(select(Device).where(Device.device_id == device_id)).first()

    def count(self) -> int:
        return self._db.scalar(select(func.count(Device.id))) or 0

    def register(self, device_id: str, mac_addr: str) -> Device:
        """Register a new device and commit it."""
        try:
            device = self.create(device_id, mac_addr)
            self._db.commit()
        except CapacityExceeded:
            self._db.rollback()
            raise
        except IntegrityError as exc:
            self._db.rollback()
            raise DeviceAlreadyRegistered(device_id) from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            LOGGER.exception("Failed to register device %s", device_id)
            raise StorageUnavailable(f"Could not register device {device_id}") from exc

        self._db.refresh(device)
        LOGGER.info("Registered device %s (mac=%s)", device_id, mac_addr)
        return device

    def create(self, device_id: str, mac_addr: str) -> Device:
        """
        Reserve a slot and insert the device without committing.
        
        The caller owns the transaction; rolling it back releases the slot.
        
        Raises:
            CapacityExceeded: if the ceiling has been reached
        """
        self._reserve_slot()
        device = Device(device_id=device_id, mac_addr=mac_addr)
        self._db.add(device)
        self._db.flush()
        return device

    def _reserve_slot(self) -> None:
        # First use seeds the counter from whatever devices already exist
        insert_ignore(
            self._db,
            DeviceCapacity,
            id=COUNTER_ROW_ID,
            registered=select(func.count(Device.id)).scalar_subquery(),
        )
        result = self._db.execute(
            update(DeviceCapacity)
            .where(DeviceCapacity.id == COUNTER_ROW_ID, DeviceCapacity.registered < self._limit)
            .values(registered=DeviceCapacity.registered + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            LOGGER.warning("Device limit of %d reached; registration rejected", self._limit)
            raise CapacityExceeded(self._limit)
