"""Fire-and-forget webhook delivery of password reset links"""
import hashlib
import hmac
import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict

import requests

from app.config import settings
from app.utils.logger import logger


def _deliver(url: str, body: bytes, headers: Dict[str, str]) -> None:
    """Deliver webhook payload in a daemon background thread (fire-and-forget)."""
    try:
        resp = requests.post(url, data=body, headers=headers, timeout=5)
        logger.debug(
            "Webhook delivered",
            extra={"action": "webhook", "status": resp.status_code},
        )
    except requests.RequestException as exc:
        logger.warning(
            "Webhook delivery failed",
            extra={"action": "webhook", "error": str(exc)},
        )


def send_webhook(event_type: str, payload: Dict[str, Any]) -> bool:
    """
    POST ``payload`` to WEBHOOK_URL in a background thread.

    When WEBHOOK_SECRET is set the body is signed and sent as
    ``X-GlobeTrotter-Signature: sha256=<hex>`` so the receiver can verify it.

    Returns False when no webhook is configured.
    """
    url = settings.WEBHOOK_URL
    if not url:
        return False

    body_dict: Dict[str, Any] = {
        "event": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **payload,
    }
    body = json.dumps(body_dict, default=str).encode()
    headers = {"Content-Type": "application/json"}

    if settings.WEBHOOK_SECRET:
        sig = hmac.new(settings.WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()
        headers["X-GlobeTrotter-Signature"] = f"sha256={sig}"

    threading.Thread(target=_deliver, args=(url, body, headers), daemon=True).start()
    return True


def send_password_reset(email: str, token: str) -> None:
    """Hand a reset link to the mail relay behind WEBHOOK_URL.

    The raw token is never logged.
    """
    reset_url = settings.PASSWORD_RESET_URL.format(token=token)
    delivered = send_webhook(
        "password_reset.requested",
        {
            "email": email,
            "reset_url": reset_url,
            "expires_in": settings.PASSWORD_RESET_EXPIRE_SECONDS,
        },
    )
    if not delivered:
        logger.warning(
            "Password reset requested but WEBHOOK_URL is not configured; no link was sent",
            extra={"action": "forgot_password"},
        )
