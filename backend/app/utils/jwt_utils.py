"""JWT utilities: signing key management, access-token issuance and verification"""
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, NamedTuple, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.services.errors import InvalidTokenError, TokenExpiredError, WrongTokenTypeError
from app.utils.clock import from_timestamp
from app.utils.logger import logger

ACCESS_TOKEN_TYPE = "access"

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------

_signing_key: Any = None      # RSA private key object or HMAC secret
_verifying_key: Any = None    # RSA public key object or HMAC secret


def _load_keys() -> None:
    """Load or auto-generate the signing material for JWT_ALGORITHM.

    HS* algorithms sign with JWT_SECRET_KEY. Asymmetric algorithms read the
    PEM in JWT_PRIVATE_KEY. When the setting is missing a throwaway key is
    generated and every token is invalidated on restart.
    """
    global _signing_key, _verifying_key

    if settings.uses_symmetric_jwt:
        secret = settings.JWT_SECRET_KEY
        if not secret:
            secret = secrets.token_urlsafe(48)
            logger.warning(
                "JWT_SECRET_KEY not set; generated an ephemeral secret for this process. "
                "All tokens will be invalidated on restart."
            )
        _signing_key = _verifying_key = secret
        return

    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if settings.JWT_PRIVATE_KEY:
        _signing_key = serialization.load_pem_private_key(settings.JWT_PRIVATE_KEY.encode(), password=None)
        logger.info("JWT keypair loaded from JWT_PRIVATE_KEY setting")
    else:
        _signing_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        logger.warning(
            "JWT_PRIVATE_KEY not set; auto-generated an RSA-2048 keypair for this process. "
            "All tokens will be invalidated on restart."
        )
    _verifying_key = _signing_key.public_key()


def get_signing_key() -> Any:
    if _signing_key is None:
        _load_keys()
    return _signing_key


def get_verifying_key() -> Any:
    if _verifying_key is None:
        _load_keys()
    return _verifying_key


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Sign and return a short-lived access token for ``user_id``.

    Claims: ``sub``, ``type="access"``, ``iat``, ``exp`` and a random
    ``jti`` so two tokens minted in the same second never collide.
    """
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)

    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "jti": str(uuid.uuid4()),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }

    headers = {"kid": settings.JWT_KEY_ID} if settings.JWT_KEY_ID else None
    return jwt.encode(payload, get_signing_key(), algorithm=settings.JWT_ALGORITHM, headers=headers)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

class AccessClaims(NamedTuple):
    """Verified claims of an access token."""
    user_id: str
    token_type: Optional[str]
    expires_at: datetime    # naive UTC
    jti: Optional[str]


def decode_token(token: str) -> AccessClaims:
    """Check signature and expiry only.

    Raises:
        TokenExpiredError: ``exp`` is in the past.
        InvalidTokenError: bad signature, malformed token or missing claims.
    """
    try:
        payload = jwt.decode(token, get_verifying_key(), algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        raise InvalidTokenError()

    sub = payload.get("sub")
    exp = payload.get("exp")
    if not sub or exp is None:
        raise InvalidTokenError()

    return AccessClaims(
        user_id=sub,
        token_type=payload.get("type"),
        expires_at=from_timestamp(int(exp)),
        jti=payload.get("jti"),
    )


def verify_access_token(token: str) -> AccessClaims:
    """Full stateless verification: signature, expiry and ``type == "access"``."""
    claims = decode_token(token)
    if claims.token_type != ACCESS_TOKEN_TYPE:
        raise WrongTokenTypeError()
    return claims
