"""Auth gateway: access-token checks for protected routes.

Every protected request runs the same ordered checks:

    no token            -> 401 NO_TOKEN
    signature / expiry  -> 401 INVALID_TOKEN | TOKEN_EXPIRED
    blacklist           -> 401 TOKEN_REVOKED
    type == "access"    -> 401 INVALID_TOKEN_TYPE
    otherwise           -> authorized, user id bound to request.state

:func:`optional_user_id` runs the same checks but turns every rejection
into an anonymous caller instead of failing the request.
"""
from typing import NamedTuple, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.monitoring import record_auth_failure
from app.models.user import User
from app.services.errors import (
    AuthenticationError,
    MissingTokenError,
    TokenRevokedError,
    WrongTokenTypeError,
)
from app.services.revocation import is_token_revoked
from app.services.users import get_user
from app.utils.jwt_utils import ACCESS_TOKEN_TYPE, AccessClaims, decode_token

_bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext(NamedTuple):
    """Resolved caller identity, populated by :func:`get_auth_context`."""
    user_id: str
    token: str              # the raw bearer token, needed to blacklist it on logout
    claims: AccessClaims


def authorize_access_token(db: Session, token: str) -> AccessClaims:
    """Run the gateway checks on ``token`` in order. Raises AuthenticationError."""
    claims = decode_token(token)
    if is_token_revoked(db, token):
        raise TokenRevokedError()
    if claims.token_type != ACCESS_TOKEN_TYPE:
        raise WrongTokenTypeError()
    return claims


def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Require a valid, unrevoked access token."""
    try:
        if not credentials:
            raise MissingTokenError()
        claims = authorize_access_token(db, credentials.credentials)
    except AuthenticationError as exc:
        record_auth_failure(exc.code)
        raise

    request.state.user_id = claims.user_id
    return AuthContext(user_id=claims.user_id, token=credentials.credentials, claims=claims)


def require_user_id(ctx: AuthContext = Depends(get_auth_context)) -> str:
    return ctx.user_id


def get_current_user(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> User:
    """Load the authenticated user. 404 if the account no longer exists."""
    return get_user(db, ctx.user_id)


def optional_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[str]:
    """Return the caller's user id, or None for anonymous or unusable tokens."""
    if not credentials:
        return None
    try:
        claims = authorize_access_token(db, credentials.credentials)
    except AuthenticationError:
        return None

    request.state.user_id = claims.user_id
    return claims.user_id
