"""
SQLAlchemy model for User entity.

Represents a platform user with a role that drives their visibility scope.
"""
from sqlalchemy import Boolean, Column, String, Uuid, TIMESTAMP, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
import uuid

from ..database import Base

ADMIN_ROLES = ("admin", "superAdmin", "productAdmin")
USER_ROLE = "user"


class User(Base):
    """User model for display names and role-based visibility."""
    
    __tablename__ = "users"
    
    # Columns
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(255), nullable=False, unique=True)
    role = Column(String(20), nullable=False, default=USER_ROLE)
    domain_id = Column(Uuid(as_uuid=True), ForeignKey("domains.id", ondelete="SET NULL"), nullable=True)
    department_id = Column(Uuid(as_uuid=True), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    
    # Constraints
    __table_args__ = (
        CheckConstraint(
            "role IN ('productAdmin', 'superAdmin', 'admin', 'user')",
            name='check_valid_role'
        ),
    )
    
    # Relationships
    domain = relationship("Domain", back_populates="users")
    department = relationship("Department", back_populates="users")
    
    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
    
    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
