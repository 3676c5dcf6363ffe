"""Login/callback flow across the two-request OAuth dance.

    IDLE --initiate()--> AWAITING_CALLBACK --handle_callback()--> RESOLVED
                                                          \\---> ABORTED(reason)

Every failure during the callback is converted to an AbortReason. The
message is what the browser sees; internal detail only goes to the log.
"""

from dataclasses import dataclass
from enum import StrEnum

from candidate_organizer.auth.auth_state import generate_state, states_match
from candidate_organizer.auth.sessions import SessionTokenManager
from candidate_organizer.auth.sso import SSOConnector
from candidate_organizer.auth.workspace import validate_workspace_domain
from candidate_organizer.db.models import User
from candidate_organizer.errors import (
    DomainMismatchError,
    ExchangeError,
    PersistenceError,
    ProfileFetchError,
)
from candidate_organizer.logging_config import get_logger
from candidate_organizer.services.provisioning_service import resolve_user
from candidate_organizer.services.user_store import UserStore

logger = get_logger(__name__)


class FlowState(StrEnum):
    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    RESOLVED = "resolved"
    ABORTED = "aborted"


class AbortReason(StrEnum):
    """Why a callback was aborted. Values are the user-facing messages."""

    MISSING_STATE_COOKIE = "Missing state cookie"
    INVALID_STATE = "Invalid state token"
    MISSING_CODE = "Missing authorization code"
    EXCHANGE_FAILED = "Failed to exchange code for token"
    PROFILE_FAILED = "Failed to get user info"
    DOMAIN_MISMATCH = "Unauthorized"
    PROVISIONING_FAILED = "Failed to create user"
    TOKEN_FAILED = "Failed to generate token"


@dataclass
class LoginRedirect:
    """Where to send the browser, and the state to pin in its cookie."""

    authorize_url: str
    state: str


@dataclass
class CallbackOutcome:
    """Terminal result of handle_callback()."""

    state: FlowState
    reason: AbortReason | None = None
    detail: str = ""
    user: User | None = None
    session_token: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == FlowState.RESOLVED

    @property
    def consumed_state(self) -> bool:
        """True once the state cookie matched and must be cleared."""
        return self.reason not in (AbortReason.MISSING_STATE_COOKIE, AbortReason.INVALID_STATE)

    @property
    def message(self) -> str:
        if self.reason is None:
            return ""
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value


def initiate_login(connector: SSOConnector) -> LoginRedirect:
    """Mint a fresh state and the provider URL that carries it."""
    state = generate_state()
    url = connector.build_authorization_url(state)
    logger.info("Login: redirecting to provider", provider=connector.name)
    return LoginRedirect(authorize_url=url, state=state)


class LoginFlow:
    """Drives one login attempt: state check, exchange, domain, user, session."""

    def __init__(
        self,
        connector: SSOConnector,
        store: UserStore,
        token_manager: SessionTokenManager,
        workspace_domain: str = "",
        sync_profile: bool = False,
    ) -> None:
        self._connector = connector
        self._store = store
        self._token_manager = token_manager
        self._workspace_domain = workspace_domain
        self._sync_profile = sync_profile
        self.state = FlowState.IDLE

    def initiate(self) -> LoginRedirect:
        redirect = initiate_login(self._connector)
        self.state = FlowState.AWAITING_CALLBACK
        return redirect

    def _abort(self, reason: AbortReason, detail: str = "") -> CallbackOutcome:
        self.state = FlowState.ABORTED
        logger.warning("Login aborted", reason=reason.name, detail=detail or None)
        return CallbackOutcome(state=FlowState.ABORTED, reason=reason, detail=detail)

    async def handle_callback(
        self,
        received_state: str | None,
        cookie_state: str | None,
        code: str | None,
    ) -> CallbackOutcome:
        # State is checked before the provider is contacted at all.
        if not cookie_state:
            return self._abort(AbortReason.MISSING_STATE_COOKIE)
        if not states_match(received_state, cookie_state):
            return self._abort(AbortReason.INVALID_STATE)
        if not code:
            return self._abort(AbortReason.MISSING_CODE)

        try:
            provider_token = await self._connector.exchange_code(code)
        except ExchangeError as e:
            logger.warning("Code exchange failed", error=e.message)
            return self._abort(AbortReason.EXCHANGE_FAILED)

        try:
            identity = await self._connector.fetch_identity(provider_token)
        except ProfileFetchError as e:
            logger.warning("Profile fetch failed", error=e.message)
            return self._abort(AbortReason.PROFILE_FAILED)

        try:
            validate_workspace_domain(identity, self._workspace_domain)
        except DomainMismatchError as e:
            return self._abort(AbortReason.DOMAIN_MISMATCH, detail=e.message)

        try:
            user = await resolve_user(self._store, identity, sync_profile=self._sync_profile)
        except PersistenceError:
            logger.exception("User provisioning failed", email=identity.email)
            return self._abort(AbortReason.PROVISIONING_FAILED)

        try:
            session_token = self._token_manager.issue(user)
        except Exception:
            logger.exception("Session token issuance failed", user_id=str(user.id))
            return self._abort(AbortReason.TOKEN_FAILED)

        self.state = FlowState.RESOLVED
        logger.info("Login resolved", user_id=str(user.id), email=user.email, role=user.role.value)
        return CallbackOutcome(
            state=FlowState.RESOLVED,
            user=user,
            session_token=session_token,
        )
