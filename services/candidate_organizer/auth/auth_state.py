"""CSRF state for the Google login redirect.

The state value lives only in a short-lived http-only cookie; nothing is
stored server-side. Single use is enforced by deleting the cookie on the
callback.
"""

import hmac
import secrets

from fastapi import Response

from candidate_organizer.config import settings

STATE_COOKIE_NAME = "oauth_state"
STATE_TOKEN_BYTES = 32  # 256 bits


def generate_state() -> str:
    """Generate a cryptographically random, URL-safe state token (no padding)."""
    return secrets.token_urlsafe(STATE_TOKEN_BYTES)


def states_match(received: str | None, stored: str | None) -> bool:
    """Constant-time comparison of the callback state with the cookie value."""
    if not received or not stored:
        return False
    return hmac.compare_digest(received.encode(), stored.encode())


def set_state_cookie(response: Response, state: str) -> None:
    # Lax, not Strict: the cookie must survive Google's top-level redirect back.
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=state,
        max_age=settings.auth.state_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="lax",
    )


def clear_state_cookie(response: Response) -> None:
    response.delete_cookie(
        key=STATE_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="lax",
    )
