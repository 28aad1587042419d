"""RefreshToken model - one row per active login session"""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils.clock import utcnow


class RefreshToken(Base):
    """A persisted refresh credential.

    Only the SHA-256 digest of the opaque token is stored; the raw value is
    handed to the client once and never persisted. Rows are deleted on
    rotation, logout, explicit revocation, password reset and expiry sweep.
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="sessions")
