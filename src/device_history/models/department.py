"""
SQLAlchemy model for Department entity.

Represents a department inside a domain.
"""
from sqlalchemy import Boolean, Column, String, Uuid, TIMESTAMP, ForeignKey, func
from sqlalchemy.orm import relationship
import uuid

from ..database import Base


class Department(Base):
    """Department model grouping users within a domain."""
    
    __tablename__ = "departments"
    
    # Columns
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    domain_id = Column(Uuid(as_uuid=True), ForeignKey("domains.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    domain = relationship("Domain", back_populates="departments")
    users = relationship("User", back_populates="department")
    
    def __repr__(self):
        return f"<Department(id={self.id}, name={self.name}, domain_id={self.domain_id})>"
