"""Profile endpoints for the signed-in account"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import AuthContext, get_auth_context, get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.auth import SuccessResponse
from app.schemas.user import (
    DeleteAccountRequest,
    ProfileEnvelope,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
)
from app.services.revocation import blacklist_token
from app.services.users import apply_profile_patch, delete_account

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileEnvelope)
def get_profile(user: User = Depends(get_current_user)) -> ProfileEnvelope:
    return ProfileEnvelope(user=ProfileResponse.model_validate(user))


@router.put("", response_model=ProfileUpdateResponse)
def update_profile(
    patch: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileUpdateResponse:
    """
    Partial update of name, email, homeCountry and currency.

    Only the fields present in the body are touched; an email change must
    be well-formed and not in use by another account.
    """
    user = apply_profile_patch(db, user, patch.model_dump(exclude_unset=True))
    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=ProfileResponse.model_validate(user),
    )


@router.delete("", response_model=SuccessResponse)
def delete_profile(
    body: DeleteAccountRequest,
    ctx: AuthContext = Depends(get_auth_context),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """
    Delete the account after password confirmation.

    Sessions and reset tokens are removed with it and the presented access
    token is blacklisted.
    """
    delete_account(db, user, body.password)
    blacklist_token(db, ctx.token, ctx.claims.expires_at)
    return SuccessResponse(message="Account deleted successfully")
