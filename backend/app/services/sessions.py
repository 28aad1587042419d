"""Session store: persisted refresh tokens with rotation.

Each row is one logged-in client. Refresh tokens are single use: a
successful ``validate_and_rotate`` deletes the presented row and inserts a
successor. The delete is conditional on the row still existing, so of two
concurrent rotations of the same token exactly one wins and the other sees
``RefreshTokenNotFoundError``.
"""
from datetime import timedelta
from typing import List, NamedTuple

from sqlalchemy.orm import Session

from app.config import settings
from app.middleware.monitoring import record_token_issued
from app.models.refresh_token import RefreshToken
from app.services.errors import (
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    SessionNotFoundError,
)
from app.utils.auth import generate_refresh_token, hash_token
from app.utils.clock import utcnow
from app.utils.jwt_utils import create_access_token
from app.utils.logger import logger


class IssuedSession(NamedTuple):
    session: RefreshToken
    refresh_token: str    # raw value, only ever returned here


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str
    user_id: str


def _new_row(user_id: str) -> IssuedSession:
    raw = generate_refresh_token()
    row = RefreshToken(
        user_id=user_id,
        token_hash=hash_token(raw),
        created_at=utcnow(),
        expires_at=utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return IssuedSession(session=row, refresh_token=raw)


def create_session(db: Session, user_id: str) -> IssuedSession:
    """Persist a new refresh token for ``user_id``."""
    issued = _new_row(user_id)
    db.add(issued.session)
    db.commit()
    db.refresh(issued.session)

    record_token_issued("refresh")
    logger.info(
        "Created session",
        extra={"user_id": user_id, "session_id": issued.session.id, "action": "create_session"},
    )
    return issued


def issue_token_pair(db: Session, user_id: str) -> TokenPair:
    """Mint an access token and open a new session (login/signup)."""
    issued = create_session(db, user_id)
    access_token = create_access_token(user_id)
    record_token_issued("access")
    return TokenPair(access_token=access_token, refresh_token=issued.refresh_token, user_id=user_id)


def validate_and_rotate(db: Session, old_token: str) -> TokenPair:
    """Exchange a refresh token for a new access/refresh pair.

    Raises:
        RefreshTokenNotFoundError: unknown token, or already rotated.
        RefreshTokenExpiredError: past expiry; the stale row is deleted.
    """
    token_hash = hash_token(old_token)
    row = db.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()
    if row is None:
        raise RefreshTokenNotFoundError()

    session_id, user_id = row.id, row.user_id

    if row.expires_at <= utcnow():
        db.query(RefreshToken).filter(RefreshToken.id == session_id).delete(synchronize_session=False)
        db.commit()
        logger.info(
            "Rejected expired refresh token",
            extra={"user_id": user_id, "session_id": session_id, "action": "rotate_session"},
        )
        raise RefreshTokenExpiredError()

    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.id == session_id, RefreshToken.token_hash == token_hash)
        .delete(synchronize_session=False)
    )
    if deleted != 1:
        # Lost the race against a concurrent rotation, logout or sweep
        db.rollback()
        raise RefreshTokenNotFoundError()

    db.expunge(row)
    successor = _new_row(user_id)
    db.add(successor.session)
    db.commit()

    access_token = create_access_token(user_id)
    record_token_issued("refresh")
    record_token_issued("access")
    logger.info(
        "Rotated refresh token",
        extra={"user_id": user_id, "session_id": successor.session.id, "action": "rotate_session"},
    )
    return TokenPair(access_token=access_token, refresh_token=successor.refresh_token, user_id=user_id)


def revoke_session(db: Session, session_id: str, requesting_user_id: str) -> None:
    """Delete one session, only if it belongs to ``requesting_user_id``."""
    deleted = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.id == session_id,
            RefreshToken.user_id == requesting_user_id,
            RefreshToken.expires_at > utcnow(),
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted == 0:
        raise SessionNotFoundError()

    logger.info(
        "Revoked session",
        extra={"user_id": requesting_user_id, "session_id": session_id, "action": "revoke_session"},
    )


def revoke_all_sessions(db: Session, user_id: str, commit: bool = True) -> int:
    """Delete every session of ``user_id``. Returns the number removed."""
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()

    logger.info(
        f"Revoked {count} session(s)",
        extra={"user_id": user_id, "action": "revoke_all_sessions"},
    )
    return count


def delete_by_token(db: Session, refresh_token: str) -> int:
    """Delete the session holding ``refresh_token`` (logout)."""
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == hash_token(refresh_token))
        .delete(synchronize_session=False)
    )
    db.commit()
    return count


def list_sessions(db: Session, user_id: str) -> List[RefreshToken]:
    """Unexpired sessions of ``user_id``, newest first."""
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.expires_at > utcnow())
        .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        .all()
    )
