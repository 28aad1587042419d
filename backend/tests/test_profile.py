"""Tests for profile endpoints"""
from fastapi.testclient import TestClient

from app.models.password_reset import PasswordReset
from app.models.refresh_token import RefreshToken
from app.services.password_reset import create_reset_request


def test_get_profile(client: TestClient, signup, auth_headers):
    created = signup()

    response = client.get("/profile", headers=auth_headers(created["accessToken"]))
    assert response.status_code == 200

    user = response.json()["user"]
    assert user["id"] == created["user"]["id"]
    assert user["email"] == "traveler@example.com"
    assert user["name"] is None
    assert user["homeCountry"] is None
    assert user["currency"] == "USD"
    assert "updatedAt" in user


def test_get_profile_requires_auth(client: TestClient):
    response = client.get("/profile")
    assert response.status_code == 401
    assert response.json()["code"] == "NO_TOKEN"


def test_update_profile(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])

    response = client.put(
        "/profile",
        json={"name": "  Ada Lovelace ", "homeCountry": "GB", "currency": "GBP"},
        headers=headers,
    )
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Profile updated successfully"
    assert data["user"]["name"] == "Ada Lovelace"
    assert data["user"]["homeCountry"] == "GB"
    assert data["user"]["currency"] == "GBP"


def test_update_profile_is_partial(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])
    client.put("/profile", json={"name": "Ada", "currency": "EUR"}, headers=headers)

    response = client.put("/profile", json={"homeCountry": "FR"}, headers=headers)
    user = response.json()["user"]
    assert user["name"] == "Ada"
    assert user["currency"] == "EUR"
    assert user["homeCountry"] == "FR"


def test_update_profile_clears_name(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])
    client.put("/profile", json={"name": "Ada"}, headers=headers)

    response = client.put("/profile", json={"name": "   "}, headers=headers)
    assert response.json()["user"]["name"] is None


def test_update_email(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])

    response = client.put("/profile", json={"email": "new@example.com"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "new@example.com"

    response = client.post("/auth/login", json={"email": "new@example.com", "password": "wanderlust"})
    assert response.status_code == 200


def test_update_email_invalid(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])

    response = client.put("/profile", json={"email": "nope"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_update_email_taken(client: TestClient, signup, auth_headers):
    signup("taken@example.com")
    headers = auth_headers(signup("mine@example.com")["accessToken"])

    response = client.put("/profile", json={"email": "taken@example.com", "name": "Sneaky"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_TAKEN"
    assert response.json()["message"] == "Email already in use"

    # Nothing from the rejected patch is applied
    profile = client.get("/profile", headers=headers).json()["user"]
    assert profile["email"] == "mine@example.com"
    assert profile["name"] is None


def test_delete_account(client: TestClient, db, signup, auth_headers):
    created = signup()
    headers = auth_headers(created["accessToken"])
    create_reset_request(db, created["user"]["id"])

    response = client.request("DELETE", "/profile", json={"password": "wanderlust"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Account deleted successfully"

    # Sessions and reset tokens are removed with the account
    assert db.query(RefreshToken).count() == 0
    assert db.query(PasswordReset).count() == 0

    # The token used to delete the account is revoked
    response = client.get("/profile", headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_REVOKED"

    response = client.post("/auth/login", json={"email": "traveler@example.com", "password": "wanderlust"})
    assert response.status_code == 401


def test_delete_account_wrong_password(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])

    response = client.request("DELETE", "/profile", json={"password": "not-it"}, headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"
    assert response.json()["message"] == "Incorrect password"

    assert client.get("/profile", headers=headers).status_code == 200


def test_update_profile_clears_home_country(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])
    client.put("/profile", json={"homeCountry": "JP", "currency": "JPY"}, headers=headers)

    response = client.put("/profile", json={"homeCountry": None}, headers=headers)
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["homeCountry"] is None
    assert user["currency"] == "JPY"

    client.put("/profile", json={"homeCountry": "JP"}, headers=headers)
    response = client.put("/profile", json={"homeCountry": "  "}, headers=headers)
    assert response.json()["user"]["homeCountry"] is None


def test_update_profile_null_currency_is_ignored(client: TestClient, signup, auth_headers):
    headers = auth_headers(signup()["accessToken"])

    response = client.put("/profile", json={"currency": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["user"]["currency"] == "USD"
