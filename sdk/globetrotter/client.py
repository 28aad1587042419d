"""GlobeTrotter auth client implementation"""
import threading
from typing import Any, Dict, List, Optional

import requests


class GlobeTrotterError(requests.HTTPError):
    """Non-2xx response from the GlobeTrotter API.

    ``code`` is the stable error code from the response envelope
    (``TOKEN_EXPIRED``, ``INVALID_CREDENTIALS`` ...), or None when the body
    was not the usual ``{error, code, message}`` JSON.
    """

    def __init__(self, response: requests.Response):
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        self.status_code = response.status_code
        self.code: Optional[str] = body.get("code")
        self.message: str = body.get("message") or response.reason or "Request failed"
        super().__init__(f"{self.status_code} {self.code or ''}: {self.message}".strip(), response=response)


class GlobeTrotterClient:
    """Client for the GlobeTrotter auth API.

    Token handling is transparent:
    - ``signup`` and ``login`` store the returned access/refresh pair.
    - Authenticated calls send ``Authorization: Bearer <access token>``.
    - When the server answers 401 ``TOKEN_EXPIRED`` the client rotates the
      refresh token once via ``POST /auth/refresh`` and replays the request.
      Concurrent callers share one rotation: refresh tokens are single use,
      so a second rotation of the same token would fail.

    Tokens can also be passed in directly to resume a saved session.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize GlobeTrotter client.

        Args:
            base_url:      Base URL of the auth service (e.g. ``http://localhost:3001``).
            access_token:  Previously issued access token, if any.
            refresh_token: Previously issued refresh token, if any.
            timeout:       Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.timeout = timeout
        self.session = requests.Session()
        self._refresh_lock = threading.Lock()

    # ---------------------------------------------------------------------------
    # Internal request helpers
    # ---------------------------------------------------------------------------

    def _send(self, method: str, endpoint: str, token: Optional[str] = None, **kwargs: Any) -> requests.Response:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return self.session.request(
            method, f"{self.base_url}{endpoint}", headers=headers, timeout=self.timeout, **kwargs
        )

    @staticmethod
    def _check(response: requests.Response) -> requests.Response:
        if response.status_code >= 400:
            raise GlobeTrotterError(response)
        return response

    @staticmethod
    def _is_expired(response: requests.Response) -> bool:
        if response.status_code != 401:
            return False
        try:
            return response.json().get("code") == "TOKEN_EXPIRED"
        except (ValueError, AttributeError):
            return False

    def _store_tokens(self, data: Dict[str, Any]) -> None:
        self.access_token = data["accessToken"]
        self.refresh_token = data["refreshToken"]

    def _refresh_after_expiry(self, stale_access_token: Optional[str]) -> None:
        """Rotate the refresh token unless another thread already did.

        Raises:
            GlobeTrotterError: If the refresh token is missing or rejected.
        """
        with self._refresh_lock:
            if self.access_token != stale_access_token:
                # Another caller refreshed while we waited for the lock
                return
            self.refresh()

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        """Make an authenticated request, refreshing once on an expired token.

        Args:
            method:   HTTP method (``GET``, ``POST``, etc.).
            endpoint: API path (e.g. ``/auth/me``).
            **kwargs: Forwarded to ``requests.Session.request``.

        Raises:
            GlobeTrotterError: On non-2xx responses, including a failed refresh.
        """
        token = self.access_token
        response = self._send(method, endpoint, token=token, **kwargs)
        if self._is_expired(response) and self.refresh_token:
            self._refresh_after_expiry(token)
            response = self._send(method, endpoint, token=self.access_token, **kwargs)
        return self._check(response)

    # ========== Credentials ==========

    def signup(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account. The returned tokens are kept on the client."""
        response = self._check(self._send("POST", "/auth/signup", json={"email": email, "password": password}))
        data = response.json()
        self._store_tokens(data)
        return data

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in. The returned tokens are kept on the client."""
        response = self._check(self._send("POST", "/auth/login", json={"email": email, "password": password}))
        data = response.json()
        self._store_tokens(data)
        return data

    def refresh(self) -> Dict[str, Any]:
        """Rotate the refresh token and store the new pair.

        The old refresh token stops working as soon as this succeeds.
        """
        if not self.refresh_token:
            raise ValueError("No refresh token; log in first")
        response = self._check(self._send("POST", "/auth/refresh", json={"refreshToken": self.refresh_token}))
        data = response.json()
        self._store_tokens(data)
        return data

    def logout(self) -> None:
        """End this session. Best effort; local tokens are always cleared."""
        body = {"refreshToken": self.refresh_token} if self.refresh_token else None
        try:
            self._send("POST", "/auth/logout", token=self.access_token, json=body)
        finally:
            self.access_token = None
            self.refresh_token = None

    def logout_all(self) -> int:
        """End every session of the account. Returns how many were revoked."""
        data = self._request("POST", "/auth/logout-all").json()
        self.access_token = None
        self.refresh_token = None
        return data["revoked"]

    # ========== Passwords ==========

    def forgot_password(self, email: str) -> Dict[str, Any]:
        """Ask for a reset link. The answer is the same for unknown emails."""
        return self._check(self._send("POST", "/auth/forgot-password", json={"email": email})).json()

    def reset_password(self, token: str, new_password: str) -> Dict[str, Any]:
        """Redeem a reset token. All sessions of the account are logged out."""
        return self._check(
            self._send("POST", "/auth/reset-password", json={"token": token, "newPassword": new_password})
        ).json()

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        response = self._request(
            "POST",
            "/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )
        return response.json()

    # ========== Identity and sessions ==========

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me").json()["user"]

    def sessions(self) -> List[Dict[str, Any]]:
        """Active sessions of the account, newest first."""
        return self._request("GET", "/auth/sessions").json()["sessions"]

    def revoke_session(self, session_id: str) -> None:
        self._request("DELETE", f"/auth/sessions/{session_id}")

    # ========== Profile ==========

    def get_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/profile").json()["user"]

    def update_profile(self, **fields: Any) -> Dict[str, Any]:
        """
        Update profile fields.

        Accepts ``name``, ``email``, ``homeCountry`` and ``currency``; only
        the fields given are changed.
        """
        return self._request("PUT", "/profile", json=fields).json()["user"]

    def delete_account(self, password: str) -> None:
        """Delete the account after password confirmation."""
        self._request("DELETE", "/profile", json={"password": password})
        self.access_token = None
        self.refresh_token = None
