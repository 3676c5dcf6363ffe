"""FastAPI dependencies for authentication and authorization.

One credential type, two carriers, tried in order:
- the ``auth_token`` cookie set by the login callback (web UI)
- an ``Authorization: Bearer`` header (API clients)

Every request validates the token and re-fetches its user; nothing is cached
in-process, so deleting a user invalidates their sessions immediately.
Handlers receive a typed RequestContext through Depends.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from candidate_organizer.auth.sessions import (
    SESSION_COOKIE_NAME,
    SessionClaims,
    get_session_manager,
)
from candidate_organizer.db.models import User, UserRole
from candidate_organizer.db.session import get_db
from candidate_organizer.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from candidate_organizer.logging_config import get_logger
from candidate_organizer.services.user_store import SQLUserStore, UserStore

logger = get_logger(__name__)


# ── Credential extraction ────────────────────────────────────────────────


class CookieCredentialExtractor:
    """Reads the session token from a cookie."""

    source = "cookie"

    def __init__(self, cookie_name: str = SESSION_COOKIE_NAME) -> None:
        self.cookie_name = cookie_name

    def extract(self, request: Request) -> str | None:
        return request.cookies.get(self.cookie_name) or None


class BearerCredentialExtractor:
    """Reads the session token from an ``Authorization: Bearer`` header."""

    source = "bearer"

    def extract(self, request: Request) -> str | None:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            return None
        token = token.strip()
        if not token or " " in token:
            return None
        return token


CredentialExtractor = CookieCredentialExtractor | BearerCredentialExtractor

# Precedence: cookie first, then bearer header.
CREDENTIAL_EXTRACTORS: tuple[CredentialExtractor, ...] = (
    CookieCredentialExtractor(),
    BearerCredentialExtractor(),
)


def extract_credential(
    request: Request,
    extractors: tuple[CredentialExtractor, ...] = CREDENTIAL_EXTRACTORS,
) -> tuple[str, str] | None:
    """Return ``(token, source)`` from the first extractor that finds one."""
    for extractor in extractors:
        token = extractor.extract(request)
        if token:
            return token, extractor.source
    return None


# ── Authentication ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class RequestContext:
    """Authenticated identity for the current request."""

    user: User
    claims: SessionClaims
    token: str
    source: str  # "cookie" or "bearer"


async def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    """Dependency providing the SQL user store for this request's session."""
    return SQLUserStore(db)


async def get_request_context(
    request: Request,
    store: UserStore = Depends(get_user_store),
) -> RequestContext:
    """Authenticate the request.

    1. Extract the token (cookie, then bearer header)
    2. Verify signature and expiry
    3. Re-fetch the user by the token's subject
    """
    found = extract_credential(request)
    if found is None:
        raise UnauthorizedError("No authentication token provided")
    token, source = found

    try:
        claims = get_session_manager().validate(token)
    except InvalidTokenError as e:
        logger.info("Rejected session token", source=source, error=e.message)
        raise UnauthorizedError("Invalid or expired token") from None

    user = await store.get_by_id(claims.subject)
    if user is None:
        logger.info("Session references missing user", user_id=str(claims.subject))
        raise UnauthorizedError("User not found")

    return RequestContext(user=user, claims=claims, token=token, source=source)


async def get_current_user(
    context: RequestContext = Depends(get_request_context),
) -> User:
    """Dependency returning just the authenticated user."""
    return context.user


def require_role(role: UserRole) -> Callable[..., Awaitable[RequestContext]]:
    """Build a dependency that admits only users holding ``role``.

    Runs after get_request_context, so unauthenticated requests get 401
    before any role check.
    """

    async def _require_role(
        context: RequestContext = Depends(get_request_context),
    ) -> RequestContext:
        if context.user.role != role:
            raise ForbiddenError(f"{role.value.capitalize()} access required")
        return context

    _require_role.__name__ = f"require_{role.value}"
    return _require_role


require_admin = require_role(UserRole.ADMIN)
