"""SQLAlchemy ORM models."""
from .device import Device
from .interaction import DeviceEntity, EntityKind, EntityTimestamp, IpObservation
from .capacity import DeviceCapacity
from .domain import Domain
from .department import Department
from .user import User

__all__ = [
    "Device",
    "DeviceEntity",
    "EntityKind",
    "EntityTimestamp",
    "IpObservation",
    "DeviceCapacity",
    "Domain",
    "Department",
    "User",
]
