"""Tests for the GlobeTrotter SDK client"""
import threading
from unittest.mock import MagicMock

import pytest
import requests

from globetrotter import GlobeTrotterClient, GlobeTrotterError

BASE_URL = "http://auth.test"


def _response(status: int, body=None) -> requests.Response:
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.reason = "Error" if status >= 400 else "OK"
    if body is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = body
    return response


def _pair(access: str, refresh: str) -> dict:
    return {"accessToken": access, "refreshToken": refresh, "expiresIn": 900}


@pytest.fixture
def client() -> GlobeTrotterClient:
    client = GlobeTrotterClient(BASE_URL, access_token="access-1", refresh_token="refresh-1")
    client.session = MagicMock()
    return client


def test_login_stores_tokens():
    client = GlobeTrotterClient(BASE_URL)
    client.session = MagicMock()
    client.session.request.return_value = _response(200, {"user": {"id": "u1"}, **_pair("a", "r")})

    data = client.login("traveler@example.com", "wanderlust")

    assert data["user"]["id"] == "u1"
    assert client.access_token == "a"
    assert client.refresh_token == "r"
    method, url = client.session.request.call_args.args
    assert (method, url) == ("POST", f"{BASE_URL}/auth/login")


def test_error_envelope_is_parsed():
    client = GlobeTrotterClient(BASE_URL)
    client.session = MagicMock()
    client.session.request.return_value = _response(
        401, {"error": "authentication_error", "code": "INVALID_CREDENTIALS", "message": "Invalid credentials"}
    )

    with pytest.raises(GlobeTrotterError) as exc_info:
        client.login("traveler@example.com", "nope")

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "INVALID_CREDENTIALS"
    assert exc_info.value.message == "Invalid credentials"


def test_error_without_json_body(client):
    client.session.request.return_value = _response(502)

    with pytest.raises(GlobeTrotterError) as exc_info:
        client.me()
    assert exc_info.value.code is None


def test_bearer_header_sent(client):
    client.session.request.return_value = _response(200, {"user": {"id": "u1"}})

    assert client.me() == {"id": "u1"}
    headers = client.session.request.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer access-1"


def test_expired_token_refreshes_and_retries(client):
    client.session.request.side_effect = [
        _response(401, {"code": "TOKEN_EXPIRED"}),
        _response(200, _pair("access-2", "refresh-2")),
        _response(200, {"user": {"id": "u1"}}),
    ]

    assert client.me() == {"id": "u1"}
    assert client.access_token == "access-2"
    assert client.refresh_token == "refresh-2"

    calls = client.session.request.call_args_list
    assert calls[1].args[1] == f"{BASE_URL}/auth/refresh"
    assert calls[1].kwargs["json"] == {"refreshToken": "refresh-1"}
    assert calls[2].kwargs["headers"]["Authorization"] == "Bearer access-2"


def test_other_401_does_not_refresh(client):
    client.session.request.return_value = _response(401, {"code": "TOKEN_REVOKED"})

    with pytest.raises(GlobeTrotterError) as exc_info:
        client.me()
    assert exc_info.value.code == "TOKEN_REVOKED"
    assert client.session.request.call_count == 1


def test_failed_refresh_raises(client):
    client.session.request.side_effect = [
        _response(401, {"code": "TOKEN_EXPIRED"}),
        _response(401, {"code": "INVALID_REFRESH_TOKEN"}),
    ]

    with pytest.raises(GlobeTrotterError) as exc_info:
        client.me()
    assert exc_info.value.code == "INVALID_REFRESH_TOKEN"


def test_refresh_skipped_when_another_thread_already_refreshed(client):
    """Waiting callers reuse the pair from the rotation that won the lock"""
    client.access_token = "access-2"
    client._refresh_after_expiry("access-1")
    client.session.request.assert_not_called()


def test_concurrent_expiry_rotates_once(client):
    refreshes = []
    barrier = threading.Barrier(2)

    def fake_request(method, url, headers=None, **kwargs):
        if url.endswith("/auth/refresh"):
            refreshes.append(kwargs["json"]["refreshToken"])
            return _response(200, _pair("access-2", "refresh-2"))
        if headers.get("Authorization") == "Bearer access-1":
            barrier.wait(timeout=5)
            return _response(401, {"code": "TOKEN_EXPIRED"})
        return _response(200, {"user": {"id": "u1"}})

    client.session.request.side_effect = fake_request
    results = []
    threads = [threading.Thread(target=lambda: results.append(client.me())) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert results == [{"id": "u1"}, {"id": "u1"}]
    assert refreshes == ["refresh-1"]


def test_logout_clears_tokens_even_on_error(client):
    client.session.request.side_effect = requests.ConnectionError("down")

    with pytest.raises(requests.ConnectionError):
        client.logout()
    assert client.access_token is None
    assert client.refresh_token is None


def test_logout_sends_refresh_token(client):
    client.session.request.return_value = _response(200, {"success": True})

    client.logout()
    kwargs = client.session.request.call_args.kwargs
    assert kwargs["json"] == {"refreshToken": "refresh-1"}
    assert kwargs["headers"]["Authorization"] == "Bearer access-1"


def test_refresh_requires_token():
    with pytest.raises(ValueError):
        GlobeTrotterClient(BASE_URL).refresh()
