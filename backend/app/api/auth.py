"""Authentication endpoints: signup, login, refresh, logout, password reset, sessions"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import AuthContext, get_auth_context, get_current_user, require_user_id
from app.config import settings
from app.database import get_db
from app.middleware.rate_limit import auth_limit, get_rate_limit, limiter
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutAllResponse,
    LogoutRequest,
    MeResponse,
    RefreshRequest,
    ResetPasswordRequest,
    SessionListResponse,
    SessionResponse,
    SignupRequest,
    SuccessResponse,
    TokenResponse,
)
from app.schemas.user import UserResponse
from app.services import sessions as session_store
from app.services.errors import AuthenticationError
from app.services.password_reset import consume_reset_token, create_reset_request
from app.services.revocation import blacklist_token
from app.services.users import authenticate, change_password, create_user, get_user_by_email
from app.utils.auth import hash_password
from app.utils.logger import logger
from app.utils.webhook import send_password_reset

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer_scheme = HTTPBearer(auto_error=False)

RESET_REQUEST_MESSAGE = "If the email exists, a reset link has been sent"


def _auth_response(user: User, pair: session_store.TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
    )


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@auth_limit
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Create an account and log it in. Returns the user and a token pair."""
    user = create_user(db, body.email, body.password)
    pair = session_store.issue_token_pair(db, user.id)
    return _auth_response(user, pair)


@router.post("/login", response_model=AuthResponse)
@auth_limit
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Exchange email and password for an access/refresh token pair."""
    user = authenticate(db, body.email.strip(), body.password)
    pair = session_store.issue_token_pair(db, user.id)

    logger.info("User logged in", extra={"user_id": user.id, "action": "login"})
    return _auth_response(user, pair)


@router.post("/refresh", response_model=TokenResponse)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """
    Rotate a refresh token.

    The presented token is consumed; the response carries its successor.
    Presenting the same token again fails with 401 INVALID_REFRESH_TOKEN.
    """
    pair = session_store.validate_and_rotate(db, body.refresh_token)
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
    )


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@router.post("/logout", response_model=SuccessResponse)
def logout(
    body: Optional[LogoutRequest] = Body(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """
    Best-effort logout; always succeeds.

    Deletes the session of the given refresh token and blacklists the
    bearer access token until its own expiry.
    """
    try:
        if body and body.refresh_token:
            session_store.delete_by_token(db, body.refresh_token)

        if credentials:
            try:
                blacklist_token(db, credentials.credentials)
            except AuthenticationError:
                # Already expired or not ours: nothing left to revoke
                pass
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Logout cleanup failed", extra={"action": "logout"}, exc_info=True)

    return SuccessResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(
    ctx: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> LogoutAllResponse:
    """End every session of the caller and revoke the presented access token."""
    count = session_store.revoke_all_sessions(db, ctx.user_id)
    blacklist_token(db, ctx.token, ctx.claims.expires_at)
    return LogoutAllResponse(message="All sessions logged out", revoked=count)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

@router.post("/forgot-password", response_model=SuccessResponse)
@limiter.limit(get_rate_limit("forgot_password"))
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """
    Request a password reset link.

    The response is identical whether or not the email belongs to an
    account, so it cannot be used to probe for registered addresses.
    """
    try:
        user = get_user_by_email(db, body.email.strip())
        if user:
            token = create_reset_request(db, user.id)
            send_password_reset(user.email, token)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Password reset request failed", extra={"action": "forgot_password"}, exc_info=True)

    return SuccessResponse(message=RESET_REQUEST_MESSAGE)


@router.post("/reset-password", response_model=SuccessResponse)
@auth_limit
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Redeem a reset token. Every existing session of the account is logged out."""
    consume_reset_token(db, body.token, hash_password(body.new_password))
    return SuccessResponse(message="Password reset successfully")


@router.post("/change-password", response_model=SuccessResponse)
def change_password_endpoint(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    change_password(db, user, body.current_password, body.new_password)
    return SuccessResponse(message="Password changed successfully")


# ---------------------------------------------------------------------------
# Identity and sessions
# ---------------------------------------------------------------------------

@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=UserResponse.model_validate(user))


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> SessionListResponse:
    """List the caller's active sessions, newest first."""
    rows = session_store.list_sessions(db, user_id)
    return SessionListResponse(
        sessions=[SessionResponse.model_validate(row) for row in rows],
        count=len(rows),
    )


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
def revoke_session(
    session_id: str,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Revoke one of the caller's sessions. 404 if it is not theirs."""
    session_store.revoke_session(db, session_id, user_id)
    return SuccessResponse(message="Session revoked")
