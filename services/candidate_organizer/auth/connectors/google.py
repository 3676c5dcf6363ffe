"""Google OAuth connector.

Authorization-code flow against Google's OAuth 2.0 endpoints, with the
profile read from the userinfo endpoint. Each network call is attempted
exactly once; authorization codes are single-use.
"""

from typing import Any
from urllib.parse import urlencode

import httpx

from candidate_organizer.auth.sso import ExternalIdentity, ProviderToken, SSOConnector
from candidate_organizer.config import GoogleOAuthConfig
from candidate_organizer.errors import ExchangeError, ProfileFetchError
from candidate_organizer.logging_config import get_logger

logger = get_logger(__name__)


class GoogleConnector(SSOConnector):
    """Google identity provider connector."""

    def __init__(
        self,
        config: GoogleOAuthConfig,
        workspace_domain: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._workspace_domain = workspace_domain
        self._transport = transport

    @property
    def name(self) -> str:
        return "google"

    @property
    def workspace_domain(self) -> str:
        return self._workspace_domain

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.http_timeout_seconds,
            transport=self._transport,
        )

    def build_authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_url,
            "scope": " ".join(self._config.scopes),
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        if self._workspace_domain:
            params["hd"] = self._workspace_domain

        return f"{self._config.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderToken:
        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._config.redirect_url,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        }

        try:
            async with self._client() as client:
                resp = await client.post(
                    self._config.token_endpoint,
                    data=token_data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("Google token exchange transport error", error=str(e))
            raise ExchangeError("Token exchange request failed") from e

        if resp.status_code != 200:
            logger.warning(
                "Google token exchange rejected",
                status=resp.status_code,
                error=_error_code(resp),
            )
            raise ExchangeError(f"Token endpoint returned status {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise ExchangeError("Token endpoint returned malformed JSON") from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise ExchangeError("Token endpoint response has no access_token")

        return ProviderToken(
            access_token=access_token,
            token_type=payload.get("token_type", "Bearer"),
            expires_in=payload.get("expires_in"),
            scope=payload.get("scope", ""),
            id_token=payload.get("id_token"),
        )

    async def fetch_identity(self, token: ProviderToken) -> ExternalIdentity:
        try:
            async with self._client() as client:
                resp = await client.get(
                    self._config.userinfo_endpoint,
                    headers={"Authorization": f"Bearer {token.access_token}"},
                )
        except httpx.HTTPError as e:
            logger.warning("Google userinfo transport error", error=str(e))
            raise ProfileFetchError("Userinfo request failed") from e

        if resp.status_code != 200:
            logger.warning("Google userinfo rejected", status=resp.status_code)
            raise ProfileFetchError(f"Userinfo endpoint returned status {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise ProfileFetchError("Userinfo endpoint returned malformed JSON") from e

        if not isinstance(payload, dict):
            raise ProfileFetchError("Userinfo payload is not an object")

        identity = _identity_from_userinfo(payload)
        logger.info(
            "Google identity fetched",
            subject=identity.subject,
            email=identity.email,
            hosted_domain=identity.hosted_domain or None,
        )
        return identity


_OPTIONAL_STRING_FIELDS = ("name", "given_name", "family_name", "picture", "locale", "hd")


def _identity_from_userinfo(payload: dict[str, Any]) -> ExternalIdentity:
    """Map a userinfo payload (v2 or OIDC field names) to an ExternalIdentity."""
    email = payload.get("email")
    subject = payload.get("id") or payload.get("sub")
    if not isinstance(email, str) or not email:
        raise ProfileFetchError("Userinfo payload has no email")
    if not subject or not isinstance(subject, (str, int)):
        raise ProfileFetchError("Userinfo payload has no subject")

    fields: dict[str, str] = {}
    for key in _OPTIONAL_STRING_FIELDS:
        value = payload.get(key)
        if value is not None and not isinstance(value, str):
            logger.warning("Userinfo field has unexpected type", field=key, type=type(value).__name__)
            raise ProfileFetchError("Userinfo payload has malformed fields")
        fields[key] = value or ""

    verified = payload.get("verified_email", payload.get("email_verified", False))

    return ExternalIdentity(
        subject=str(subject),
        email=email.strip().lower(),
        email_verified=bool(verified),
        display_name=fields["name"],
        given_name=fields["given_name"],
        family_name=fields["family_name"],
        picture=fields["picture"],
        locale=fields["locale"],
        hosted_domain=fields["hd"].strip().lower(),
        raw_claims=payload,
    )


def _error_code(resp: httpx.Response) -> str | None:
    """Best-effort extraction of the OAuth ``error`` field for logging."""
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get("error") if isinstance(body, dict) else None
