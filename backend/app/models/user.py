"""User model - the credential store root"""
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from app.database import Base
from app.utils.clock import utcnow


class User(Base):
    """A GlobeTrotter account.

    Deleting a user cascades to its refresh-token sessions and password
    reset tokens.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    home_country = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    sessions = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    password_resets = relationship(
        "PasswordReset", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
