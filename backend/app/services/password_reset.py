"""Password-reset store: one-time reset tokens"""
from datetime import timedelta

from sqlalchemy.orm import Session

from app.config import settings
from app.models.password_reset import PasswordReset
from app.models.user import User
from app.services.errors import (
    ResetTokenExpiredError,
    ResetTokenNotFoundError,
    ResetTokenUsedError,
    UserNotFoundError,
)
from app.services.sessions import revoke_all_sessions
from app.utils.auth import generate_reset_token, hash_token
from app.utils.clock import utcnow
from app.utils.logger import logger


def create_reset_request(db: Session, user_id: str) -> str:
    """Issue a fresh reset token for ``user_id`` and return its raw value.

    Every earlier unused token of the user is marked used first, so only
    the newest one can ever be consumed.
    """
    superseded = (
        db.query(PasswordReset)
        .filter(PasswordReset.user_id == user_id, PasswordReset.used == False)  # noqa: E712
        .update({PasswordReset.used: True}, synchronize_session=False)
    )

    raw = generate_reset_token()
    db.add(PasswordReset(
        user_id=user_id,
        token_hash=hash_token(raw),
        used=False,
        expires_at=utcnow() + timedelta(seconds=settings.PASSWORD_RESET_EXPIRE_SECONDS),
    ))
    db.commit()

    logger.info(
        f"Created password reset request ({superseded} earlier token(s) superseded)",
        extra={"user_id": user_id, "action": "create_reset_request"},
    )
    return raw


def consume_reset_token(db: Session, token: str, new_password_hash: str) -> str:
    """Redeem ``token``: set the new password and log out every session.

    Returns the user id.

    Raises:
        ResetTokenNotFoundError: unknown token.
        ResetTokenUsedError: already consumed or superseded.
        ResetTokenExpiredError: past expiry.
    """
    record = db.query(PasswordReset).filter(PasswordReset.token_hash == hash_token(token)).first()
    if record is None:
        raise ResetTokenNotFoundError()
    if record.used:
        raise ResetTokenUsedError()
    if record.expires_at <= utcnow():
        raise ResetTokenExpiredError()

    user_id = record.user_id

    # used=false guard: a concurrent consumer that got here first wins
    flipped = (
        db.query(PasswordReset)
        .filter(PasswordReset.id == record.id, PasswordReset.used == False)  # noqa: E712
        .update({PasswordReset.used: True}, synchronize_session=False)
    )
    if flipped != 1:
        db.rollback()
        raise ResetTokenUsedError()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        db.rollback()
        raise UserNotFoundError()

    user.password_hash = new_password_hash
    revoked = revoke_all_sessions(db, user_id, commit=False)
    db.commit()

    logger.info(
        f"Password reset completed, {revoked} session(s) invalidated",
        extra={"user_id": user_id, "action": "consume_reset_token"},
    )
    return user_id
