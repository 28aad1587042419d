"""Tests for the forgot/reset password flow"""
from datetime import timedelta
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Query

from app.api import auth as auth_api
from app.models.password_reset import PasswordReset
from app.models.refresh_token import RefreshToken
from app.services.errors import ResetTokenExpiredError, ResetTokenNotFoundError, ResetTokenUsedError
from app.services.password_reset import consume_reset_token, create_reset_request
from app.services.sessions import create_session
from app.services.users import create_user
from app.utils.auth import hash_password, hash_token, verify_password
from app.utils.clock import utcnow


@pytest.fixture
def outbox(monkeypatch) -> List[Tuple[str, str]]:
    """Capture reset links instead of posting them to the webhook"""
    sent: List[Tuple[str, str]] = []
    monkeypatch.setattr(auth_api, "send_password_reset", lambda email, token: sent.append((email, token)))
    return sent


def test_forgot_password_sends_token(client: TestClient, signup, outbox):
    signup()

    response = client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == "If the email exists, a reset link has been sent"

    assert len(outbox) == 1
    email, token = outbox[0]
    assert email == "traveler@example.com"
    # The raw token is never echoed back to the caller
    assert token not in response.text


def test_forgot_password_unknown_email_same_response(client: TestClient, signup, outbox):
    signup()
    known = client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()
    assert len(outbox) == 1


def test_reset_password(client: TestClient, signup, outbox, auth_headers):
    created = signup()
    client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    _, token = outbox[0]

    response = client.post("/auth/reset-password", json={"token": token, "newPassword": "fresh-start"})
    assert response.status_code == 200
    assert response.json()["success"] is True

    # Every session is logged out
    response = client.post("/auth/refresh", json={"refreshToken": created["refreshToken"]})
    assert response.json()["code"] == "INVALID_REFRESH_TOKEN"

    # Only the new password works
    old = client.post("/auth/login", json={"email": "traveler@example.com", "password": "wanderlust"})
    assert old.status_code == 401
    new = client.post("/auth/login", json={"email": "traveler@example.com", "password": "fresh-start"})
    assert new.status_code == 200


def test_reset_token_is_single_use(client: TestClient, signup, outbox):
    signup()
    client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    _, token = outbox[0]

    first = client.post("/auth/reset-password", json={"token": token, "newPassword": "fresh-start"})
    assert first.status_code == 200

    second = client.post("/auth/reset-password", json={"token": token, "newPassword": "another-one"})
    assert second.status_code == 400
    assert second.json()["code"] == "RESET_TOKEN_USED"


def test_newer_request_supersedes_older_token(client: TestClient, signup, outbox):
    signup()
    client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    client.post("/auth/forgot-password", json={"email": "traveler@example.com"})
    (_, older), (_, newer) = outbox

    response = client.post("/auth/reset-password", json={"token": older, "newPassword": "fresh-start"})
    assert response.status_code == 400
    assert response.json()["code"] == "RESET_TOKEN_USED"

    response = client.post("/auth/reset-password", json={"token": newer, "newPassword": "fresh-start"})
    assert response.status_code == 200


def test_reset_unknown_token(client: TestClient):
    response = client.post("/auth/reset-password", json={"token": "made-up", "newPassword": "fresh-start"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_RESET_TOKEN"


def test_reset_short_password(client: TestClient):
    response = client.post("/auth/reset-password", json={"token": "made-up", "newPassword": "123"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


# ===== Store =====

def test_create_reset_request_stores_hash(db):
    user = create_user(db, "nomad@example.com", "wanderlust")
    raw = create_reset_request(db, user.id)

    record = db.query(PasswordReset).one()
    assert record.token_hash == hash_token(raw)
    assert record.used is False
    assert record.expires_at > utcnow() + timedelta(minutes=59)


def test_consume_reset_token(db):
    user = create_user(db, "nomad@example.com", "wanderlust")
    raw = create_reset_request(db, user.id)

    assert consume_reset_token(db, raw, hash_password("fresh-start")) == user.id

    db.refresh(user)
    assert verify_password("fresh-start", user.password_hash)
    assert db.query(PasswordReset).one().used is True

    with pytest.raises(ResetTokenUsedError):
        consume_reset_token(db, raw, hash_password("again-again"))


def test_consume_reset_token_lost_race(db, monkeypatch):
    """A concurrent redemption that marks the token used first wins"""
    user = create_user(db, "nomad@example.com", "wanderlust")
    create_session(db, user.id)
    raw = create_reset_request(db, user.id)
    original_update = Query.update

    def update_after_rival(query, *args, **kwargs):
        # The rival redemption flips the flag first
        db.execute(PasswordReset.__table__.update().values(used=True))
        return original_update(query, *args, **kwargs)

    monkeypatch.setattr(Query, "update", update_after_rival)

    with pytest.raises(ResetTokenUsedError):
        consume_reset_token(db, raw, hash_password("fresh-start"))

    monkeypatch.undo()
    db.refresh(user)
    assert verify_password("wanderlust", user.password_hash)
    assert db.query(RefreshToken).count() == 1


def test_consume_expired_reset_token(db):
    user = create_user(db, "nomad@example.com", "wanderlust")
    raw = create_reset_request(db, user.id)
    record = db.query(PasswordReset).one()
    record.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    with pytest.raises(ResetTokenExpiredError):
        consume_reset_token(db, raw, hash_password("fresh-start"))

    db.refresh(user)
    assert verify_password("wanderlust", user.password_hash)


def test_consume_unknown_reset_token(db):
    with pytest.raises(ResetTokenNotFoundError):
        consume_reset_token(db, "nope", hash_password("fresh-start"))
