"""Password hashing and opaque token utilities"""
import hashlib
import secrets

import bcrypt

from app.config import settings
from app.utils.logger import logger

if settings.BCRYPT_ROUNDS < 12:
    logger.warning(
        f"BCRYPT_ROUNDS={settings.BCRYPT_ROUNDS} is below the recommended 12; "
        "only use a low work factor for tests"
    )

# 256 bits of entropy for every opaque token we hand out
OPAQUE_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a password using bcrypt at the configured work factor."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Used to spend the same bcrypt work when the email is unknown
DUMMY_PASSWORD_HASH = hash_password(secrets.token_hex(8))


def generate_refresh_token() -> str:
    """Generate an opaque refresh token with no embedded claims."""
    return secrets.token_hex(OPAQUE_TOKEN_BYTES)


def generate_reset_token() -> str:
    """Generate an opaque one-time password reset token."""
    return secrets.token_urlsafe(OPAQUE_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store and look up tokens at rest."""
    return hashlib.sha256(token.encode()).hexdigest()
