"""
Principal and device session models.

Principal: identity, role and optimistic-concurrency version
AuthSession: one logged-in device, keyed by the hash of its refresh secret

Sessions belong exclusively to their principal and are rewritten together
with it on every save.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    Text,
)
from sqlalchemy.orm import relationship

from db.engine import Base


class Principal(Base):
    """
    Authenticated identity.

    ``version`` increments on every write; saves compare it to detect
    concurrent updates.
    """
    __tablename__ = "principals"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    mobile = Column(String(32), unique=True, nullable=True, index=True)
    hashed_password = Column(Text, nullable=True)
    role = Column(String(20), nullable=False, default="standard")
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(Integer, nullable=False)  # Unix timestamp
    updated_at = Column(Integer, nullable=False)  # Unix timestamp
    last_login_at = Column(Integer, nullable=True)  # Unix timestamp

    # Relationships
    sessions = relationship(
        "AuthSession",
        back_populates="principal",
        cascade="all, delete-orphan",
        order_by="AuthSession.position",
    )

    def __repr__(self):
        return f"<Principal(id={self.id}, role={self.role})>"


class AuthSession(Base):
    """
    Device session bound to a hashed refresh secret.
    """
    __tablename__ = "auth_sessions"

    id = Column(String(64), primary_key=True)
    principal_id = Column(
        String(64), ForeignKey("principals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    refresh_token_hash = Column(String(64), nullable=False, unique=True, index=True)
    device_info = Column(Text, nullable=False, default="")
    position = Column(Integer, nullable=False)  # Order within the principal's list
    created_at = Column(Integer, nullable=False)  # Unix timestamp
    last_used_at = Column(Integer, nullable=False)  # Unix timestamp
    expires_at = Column(Integer, nullable=False)  # Unix timestamp

    # Relationship
    principal = relationship("Principal", back_populates="sessions")

    def __repr__(self):
        return f"<AuthSession(id={self.id}, principal_id={self.principal_id})>"
