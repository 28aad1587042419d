"""Revocation store: blacklist of access tokens invalidated before expiry"""
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.revoked_token import RevokedToken
from app.utils.auth import hash_token
from app.utils.clock import utcnow
from app.utils.jwt_utils import decode_token
from app.utils.logger import logger


def blacklist_token(db: Session, access_token: str, expires_at: Optional[datetime] = None) -> None:
    """Record ``access_token`` as revoked. Idempotent.

    When ``expires_at`` is not given it is taken from the token's own
    ``exp`` claim, which means the token must still verify; expired or
    forged tokens raise and need no blacklisting.
    """
    if expires_at is None:
        expires_at = decode_token(access_token).expires_at

    token_hash = hash_token(access_token)
    existing = db.query(RevokedToken).filter(RevokedToken.token_hash == token_hash).first()
    if existing:
        return

    db.add(RevokedToken(token_hash=token_hash, expires_at=expires_at))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent logout inserted the same token first
        db.rollback()
        return

    logger.info("Blacklisted access token", extra={"action": "blacklist_token"})


def is_token_revoked(db: Session, access_token: str) -> bool:
    """Point lookup. Rows already past their expiry are treated as absent."""
    row = (
        db.query(RevokedToken.id)
        .filter(
            RevokedToken.token_hash == hash_token(access_token),
            RevokedToken.expires_at > utcnow(),
        )
        .first()
    )
    return row is not None
