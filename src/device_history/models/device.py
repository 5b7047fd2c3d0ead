"""
SQLAlchemy model for Device entity.

Represents a registered physical or virtual unit that users and domains log in from.
"""
from sqlalchemy import Column, String, Uuid, TIMESTAMP, func
from sqlalchemy.orm import relationship
import uuid

from ..database import Base


class Device(Base):
    """Device model keyed externally by ``device_id``."""
    
    __tablename__ = "devices"
    
    # Columns
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    device_id = Column(String(255), nullable=False, unique=True)
    mac_addr = Column(String(64), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    entities = relationship(
        "DeviceEntity",
        back_populates="device",
        cascade="all, delete-orphan",
        order_by="DeviceEntity.id",
    )
    ip_addresses = relationship(
        "IpObservation",
        back_populates="device",
        cascade="all, delete-orphan",
        order_by="IpObservation.id",
    )
    
    def __repr__(self):
        return f"<Device(id={self.id}, device_id={self.device_id}, mac_addr={self.mac_addr})>"
