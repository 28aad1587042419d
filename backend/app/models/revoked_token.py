"""RevokedToken model - access-token blacklist"""
from sqlalchemy import Column, DateTime, Integer, String

from app.database import Base
from app.utils.clock import utcnow


class RevokedToken(Base):
    """Stores access tokens invalidated before their natural expiry.

    The gateway checks this table on every authenticated request.
    expires_at mirrors the token's own exp so old rows can be pruned safely.
    """

    __tablename__ = "token_blacklist"

    id = Column(Integer, primary_key=True, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)  # SHA-256 of the exact token string
    revoked_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
