"""
SQLAlchemy model for the registered-device counter.

A single row (``id = 1``) tracks how many devices hold a registration slot.
"""
from sqlalchemy import CheckConstraint, Column, Integer

from ..database import Base

COUNTER_ROW_ID = 1


class DeviceCapacity(Base):
    """Shared counter reserved with an increment-if-below-limit update."""
    
    __tablename__ = "device_capacity"
    
    # Columns
    id = Column(Integer, primary_key=True, autoincrement=False)
    registered = Column(Integer, nullable=False, default=0)
    
    # Constraints
    __table_args__ = (
        CheckConstraint('registered >= 0', name='check_registered_non_negative'),
    )
    
    def __repr__(self):
        return f"<DeviceCapacity(registered={self.registered})>"
