"""
SQLAlchemy models for the interaction log embedded under a Device.

A ``DeviceEntity`` row is the single entry a domain or user owns on a device;
its ``EntityTimestamp`` rows are the access times appended to that entry.
``IpObservation`` rows form the device's append-only IP history.
"""
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from ..database import Base


class EntityKind(str, Enum):
    DOMAIN = "domain"
    USER = "user"


class DeviceEntity(Base):
    """One domain or user entry on a device, unique per (device, kind, entity)."""
    
    __tablename__ = "device_entities"
    
    # Columns
    id = Column(Integer, primary_key=True, autoincrement=True)
    device_pk = Column(Uuid(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(10), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False)
    
    # Constraints
    __table_args__ = (
        UniqueConstraint('device_pk', 'kind', 'entity_id', name='uq_entity_per_device'),
        CheckConstraint("kind IN ('domain', 'user')", name='check_valid_kind'),
    )
    
    # Relationships
    device = relationship("Device", back_populates="entities")
    timestamps = relationship(
        "EntityTimestamp",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="EntityTimestamp.id",
    )
    
    def __repr__(self):
        return f"<DeviceEntity(id={self.id}, kind={self.kind}, entity_id={self.entity_id})>"


class EntityTimestamp(Base):
    """A single access time (unix seconds) appended to a device entry."""
    
    __tablename__ = "entity_timestamps"
    
    # Columns
    id = Column(Integer, primary_key=True, autoincrement=True)
    entry_id = Column(Integer, ForeignKey("device_entities.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False)
    
    # Relationships
    entry = relationship("DeviceEntity", back_populates="timestamps")
    
    def __repr__(self):
        return f"<EntityTimestamp(entry_id={self.entry_id}, timestamp={self.timestamp})>"


class IpObservation(Base):
    """An IP address seen for a device at a given time."""
    
    __tablename__ = "ip_observations"
    
    # Columns
    id = Column(Integer, primary_key=True, autoincrement=True)
    device_pk = Column(Uuid(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    ip = Column(String(64), nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    
    # Relationships
    device = relationship("Device", back_populates="ip_addresses")
    
    def __repr__(self):
        return f"<IpObservation(device_pk={self.device_pk}, ip={self.ip}, timestamp={self.timestamp})>"
