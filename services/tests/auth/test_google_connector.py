"""Tests for the Google OAuth connector.

Network calls are intercepted with httpx.MockTransport; no request ever
leaves the process.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from candidate_organizer.auth.connectors.google import GoogleConnector
from candidate_organizer.auth.sso import ProviderToken
from candidate_organizer.config import GoogleOAuthConfig
from candidate_organizer.errors import ExchangeError, ProfileFetchError

CONFIG = GoogleOAuthConfig(
    client_id="client-123",
    client_secret="shh",
    redirect_url="http://api.test/api/v1/auth/callback",
)


def _connector(handler, workspace_domain: str = "") -> GoogleConnector:
    return GoogleConnector(
        CONFIG,
        workspace_domain=workspace_domain,
        transport=httpx.MockTransport(handler),
    )


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


class TestAuthorizationUrl:
    def test_carries_required_parameters(self):
        url = _connector(lambda r: httpx.Response(500)).build_authorization_url("st-1")

        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        q = _query(url)
        assert q["response_type"] == ["code"]
        assert q["client_id"] == ["client-123"]
        assert q["redirect_uri"] == ["http://api.test/api/v1/auth/callback"]
        assert q["scope"] == ["openid email profile"]
        assert q["state"] == ["st-1"]
        assert q["access_type"] == ["online"]
        assert q["prompt"] == ["select_account"]
        assert "hd" not in q

    def test_workspace_domain_adds_hint(self):
        connector = _connector(lambda r: httpx.Response(500), workspace_domain="co.com")
        assert _query(connector.build_authorization_url("st-1"))["hd"] == ["co.com"]

    def test_name_and_domain(self):
        connector = _connector(lambda r: httpx.Response(500), workspace_domain="co.com")
        assert connector.name == "google"
        assert connector.workspace_domain == "co.com"


class TestExchangeCode:
    async def test_success(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "access_token": "ya29.token",
                    "token_type": "Bearer",
                    "expires_in": 3599,
                    "scope": "openid email profile",
                    "id_token": "id.jwt.value",
                },
            )

        token = await _connector(handler).exchange_code("auth-code")

        assert token.access_token == "ya29.token"
        assert token.expires_in == 3599
        assert token.id_token == "id.jwt.value"

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://oauth2.googleapis.com/token"
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["auth-code"]
        assert form["client_id"] == ["client-123"]
        assert form["client_secret"] == ["shh"]
        assert form["redirect_uri"] == ["http://api.test/api/v1/auth/callback"]

    async def test_rejected_code_raises_without_retry(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(ExchangeError):
            await _connector(handler).exchange_code("used-code")
        assert calls == 1

    async def test_malformed_json_raises(self):
        with pytest.raises(ExchangeError):
            await _connector(lambda r: httpx.Response(200, text="<html>")).exchange_code("c")

    async def test_missing_access_token_raises(self):
        handler = lambda r: httpx.Response(200, json={"token_type": "Bearer"})  # noqa: E731
        with pytest.raises(ExchangeError):
            await _connector(handler).exchange_code("c")

    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExchangeError):
            await _connector(handler).exchange_code("c")

    async def test_error_maps_to_bad_gateway(self):
        with pytest.raises(ExchangeError) as exc_info:
            await _connector(lambda r: httpx.Response(503)).exchange_code("c")
        assert exc_info.value.status_code == 502


class TestFetchIdentity:
    TOKEN = ProviderToken(access_token="ya29.token")

    async def test_maps_userinfo_payload(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "1234567890",
                    "email": "Alice@CO.com",
                    "verified_email": True,
                    "name": "Alice Smith",
                    "given_name": "Alice",
                    "family_name": "Smith",
                    "picture": "https://example.com/a.png",
                    "locale": "en",
                    "hd": "CO.com",
                },
            )

        identity = await _connector(handler).fetch_identity(self.TOKEN)

        assert seen[0].headers["authorization"] == "Bearer ya29.token"
        assert str(seen[0].url) == "https://www.googleapis.com/oauth2/v2/userinfo"
        assert identity.subject == "1234567890"
        assert identity.email == "alice@co.com"
        assert identity.email_verified is True
        assert identity.display_name == "Alice Smith"
        assert identity.given_name == "Alice"
        assert identity.hosted_domain == "co.com"

    async def test_accepts_oidc_field_names(self):
        handler = lambda r: httpx.Response(  # noqa: E731
            200, json={"sub": "sub-1", "email": "bob@gmail.com", "email_verified": False}
        )
        identity = await _connector(handler).fetch_identity(self.TOKEN)

        assert identity.subject == "sub-1"
        assert identity.email_verified is False
        assert identity.hosted_domain == ""
        assert identity.display_name == ""

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(401, json={"error": "invalid_token"}),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json=["a", "list"]),
            httpx.Response(200, json={"id": "1"}),
            httpx.Response(200, json={"email": "alice@co.com"}),
            httpx.Response(200, json={"id": "1", "email": "alice@co.com", "hd": 123}),
            httpx.Response(200, json={"id": "1", "email": "alice@co.com", "hd": ["co.com"]}),
            httpx.Response(200, json={"id": "1", "email": "alice@co.com", "name": {"first": "A"}}),
            httpx.Response(200, json={"id": "1", "email": "alice@co.com", "locale": 7}),
        ],
        ids=[
            "unauthorized",
            "not-json",
            "not-object",
            "no-email",
            "no-subject",
            "hd-int",
            "hd-list",
            "name-object",
            "locale-int",
        ],
    )
    async def test_bad_responses_raise(self, response):
        with pytest.raises(ProfileFetchError):
            await _connector(lambda r: response).fetch_identity(self.TOKEN)

    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProfileFetchError):
            await _connector(handler).fetch_identity(self.TOKEN)
