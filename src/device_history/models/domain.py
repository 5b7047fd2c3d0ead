"""
SQLAlchemy model for Domain entity.

Represents an organizational domain whose logins are tracked on devices.
"""
from sqlalchemy import Boolean, Column, String, Uuid, TIMESTAMP, func
from sqlalchemy.orm import relationship
import uuid

from ..database import Base


class Domain(Base):
    """Domain model used for display names and visibility scopes."""
    
    __tablename__ = "domains"
    
    # Columns
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    departments = relationship("Department", back_populates="domain", cascade="all, delete-orphan")
    users = relationship("User", back_populates="domain")
    
    def __repr__(self):
        return f"<Domain(id={self.id}, name={self.name})>"
