"""Credential store: user accounts and passwords"""
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.errors import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from app.utils.auth import DUMMY_PASSWORD_HASH, hash_password, verify_password
from app.utils.logger import logger


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFoundError()
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, email: str, password: str) -> User:
    """Register a new account. Raises EmailAlreadyRegisteredError on duplicates."""
    if get_user_by_email(db, email):
        raise EmailAlreadyRegisteredError()

    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailAlreadyRegisteredError()
    db.refresh(user)

    logger.info("Created user", extra={"user_id": user.id, "action": "signup"})
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials, else raise InvalidCredentialsError.

    An unknown email still pays for one bcrypt check so response timing
    does not reveal which accounts exist.
    """
    user = get_user_by_email(db, email)
    if user is None:
        verify_password(password, DUMMY_PASSWORD_HASH)
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        logger.info("Failed login", extra={"user_id": user.id, "action": "login"})
        raise InvalidCredentialsError()
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Changed password", extra={"user_id": user.id, "action": "change_password"})


def apply_profile_patch(db: Session, user: User, changes: Dict[str, Any]) -> User:
    """Apply a partial update. ``changes`` holds only the fields the client sent."""
    email = changes.get("email")
    if email and email != user.email:
        if get_user_by_email(db, email):
            raise EmailAlreadyRegisteredError("Email already in use")
        user.email = email

    if "name" in changes:
        name = changes["name"]
        user.name = (name or "").strip() or None

    if "home_country" in changes:
        user.home_country = (changes["home_country"] or "").strip() or None

    # currency is NOT NULL; an explicit null leaves it unchanged
    if changes.get("currency"):
        user.currency = changes["currency"]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailAlreadyRegisteredError("Email already in use")
    db.refresh(user)

    logger.info("Updated profile", extra={"user_id": user.id, "action": "update_profile"})
    return user


def delete_account(db: Session, user: User, password: str) -> None:
    """Delete ``user`` after re-checking the password.

    Sessions and reset tokens go with it via cascade.
    """
    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Incorrect password")

    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info("Deleted account", extra={"user_id": user_id, "action": "delete_account"})
