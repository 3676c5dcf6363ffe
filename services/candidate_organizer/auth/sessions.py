"""Signed session tokens.

Sessions are stateless HS256 JWTs carrying the user id and role. Nothing is
stored server-side; revocation happens by deleting the user (every request
re-fetches the user) or by letting the 24 hour expiry lapse.

Token claims:
    sub   user id (UUID string)
    role  "admin" or "user"
    iat   issued-at, epoch seconds
    exp   expiry, epoch seconds (iat + session TTL)
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from candidate_organizer.config import settings
from candidate_organizer.db.models import User, UserRole, utc_now
from candidate_organizer.errors import InvalidTokenError
from candidate_organizer.logging_config import get_logger

logger = get_logger(__name__)

SESSION_COOKIE_NAME = "auth_token"
SESSION_ALGORITHM = "HS256"
DEFAULT_SESSION_TTL = timedelta(hours=24)

_REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


@dataclass(frozen=True)
class SessionClaims:
    """Validated contents of a session token."""

    subject: uuid.UUID
    role: UserRole
    issued_at: datetime
    expires_at: datetime


class SessionTokenManager:
    """Issues and validates session tokens with a single static secret."""

    def __init__(self, secret: str, ttl: timedelta = DEFAULT_SESSION_TTL) -> None:
        if not secret:
            raise ValueError("Session signing secret must not be empty")
        self._secret = secret
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user: User, now: datetime | None = None) -> str:
        """Mint a token for ``user``. Pure: no I/O."""
        issued_at = now or utc_now()
        expires_at = issued_at + self._ttl
        payload = {
            "sub": str(user.id),
            "role": UserRole(user.role).value,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=SESSION_ALGORITHM)

    def validate(self, token: str, now: datetime | None = None) -> SessionClaims:
        """Verify signature, structure and expiry of ``token``.

        Does not check that the user still exists; the auth dependency does.

        Raises:
            InvalidTokenError: if the token is malformed, tampered or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[SESSION_ALGORITHM],
                # Time checks are done below against the injectable clock.
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid session token: {e}") from e

        try:
            subject = uuid.UUID(str(payload["sub"]))
            role = UserRole(payload["role"])
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=UTC)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            raise InvalidTokenError("Malformed session token claims") from e

        current = now or utc_now()
        if expires_at <= current:
            raise InvalidTokenError("Session token expired")

        return SessionClaims(
            subject=subject,
            role=role,
            issued_at=issued_at,
            expires_at=expires_at,
        )


_manager: SessionTokenManager | None = None


def get_session_manager() -> SessionTokenManager:
    """Return the process-wide token manager built from settings."""
    global _manager  # noqa: PLW0603
    if _manager is None:
        _manager = SessionTokenManager(
            settings.session_secret,
            ttl=timedelta(hours=settings.auth.session_ttl_hours),
        )
    return _manager
