"""Authentication router.

Google login is a two-request dance ending in an http-only session cookie:

    GET  /api/v1/auth/google    - set oauth_state cookie, 307 to Google
    GET  /api/v1/auth/callback  - verify state, provision user, set auth_token,
                                  307 to the frontend (?success=true / ?error=...)

Authenticated endpoints:
    POST /api/v1/auth/refresh   - re-issue a session token
    POST /api/v1/auth/logout    - clear the auth_token cookie
    GET  /api/v1/auth/me        - current user profile
    GET  /api/v1/auth/token     - current token and profile (for the SPA)
"""

from datetime import datetime
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from candidate_organizer.api.dependencies import (
    RequestContext,
    get_current_user,
    get_request_context,
)
from candidate_organizer.auth.auth_state import (
    STATE_COOKIE_NAME,
    clear_state_cookie,
    set_state_cookie,
)
from candidate_organizer.auth.connectors import get_connector
from candidate_organizer.auth.login_flow import LoginFlow, initiate_login
from candidate_organizer.auth.sessions import SESSION_COOKIE_NAME, get_session_manager
from candidate_organizer.config import settings
from candidate_organizer.db.models import User, UserRole
from candidate_organizer.db.session import get_db
from candidate_organizer.logging_config import get_logger
from candidate_organizer.services.user_store import SQLUserStore

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


# --- Pydantic models ---


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    workspace_domain: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.display_name,
            role=user.role,
            workspace_domain=user.workspace_domain,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class TokenResponse(BaseModel):
    token: str


class TokenWithUserResponse(BaseModel):
    token: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


# --- Helpers ---


def _build_login_flow(db: AsyncSession) -> LoginFlow:
    return LoginFlow(
        connector=get_connector(),
        store=SQLUserStore(db),
        token_manager=get_session_manager(),
        workspace_domain=settings.auth.workspace_domain,
        sync_profile=settings.auth.sync_profile_on_login,
    )


def _frontend_callback_url(**params: str) -> str:
    return f"{settings.frontend_url}/auth/callback?{urlencode(params)}"


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=int(get_session_manager().ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="strict",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="strict",
    )


# --- Endpoints ---


@router.get("/google")
async def google_login() -> RedirectResponse:
    """Start the Google login: pin a CSRF state cookie and redirect to Google."""
    redirect = initiate_login(get_connector())

    response = RedirectResponse(url=redirect.authorize_url, status_code=307)
    set_state_cookie(response, redirect.state)
    return response


@router.get("/callback")
async def google_callback(
    request: Request,
    state: str | None = Query(None, description="State echoed back by Google"),
    code: str | None = Query(None, description="Authorization code from Google"),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Finish the Google login. Always answers with a redirect to the frontend."""
    flow = _build_login_flow(db)
    outcome = await flow.handle_callback(
        received_state=state,
        cookie_state=request.cookies.get(STATE_COOKIE_NAME),
        code=code,
    )

    if outcome.succeeded and outcome.session_token:
        response = RedirectResponse(url=_frontend_callback_url(success="true"), status_code=307)
        _set_session_cookie(response, outcome.session_token)
    else:
        await db.rollback()
        response = RedirectResponse(
            url=_frontend_callback_url(error=outcome.message), status_code=307
        )

    if outcome.consumed_state:
        clear_state_cookie(response)
    return response


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    response: Response,
    context: RequestContext = Depends(get_request_context),
) -> TokenResponse:
    """Issue a fresh 24 hour token for the current user."""
    token = get_session_manager().issue(context.user)
    _set_session_cookie(response, token)
    logger.info("Session refreshed", user_id=str(context.user.id))
    return TokenResponse(token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
) -> MessageResponse:
    """Clear the session cookie. The token itself stays valid until expiry."""
    _clear_session_cookie(response)
    logger.info("Logged out", user_id=str(user.id))
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the current user's profile."""
    return UserResponse.from_user(user)


@router.get("/token", response_model=TokenWithUserResponse)
async def get_token(
    context: RequestContext = Depends(get_request_context),
) -> TokenWithUserResponse:
    """Return the token the request authenticated with, plus the user."""
    return TokenWithUserResponse(token=context.token, user=UserResponse.from_user(context.user))
