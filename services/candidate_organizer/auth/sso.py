"""SSO connector base abstraction.

Defines the interface an identity provider connector must implement, plus
the token and identity types that flow out of the provider handshake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProviderToken:
    """Tokens returned by the provider's code exchange."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str = ""
    id_token: str | None = field(default=None, repr=False)


@dataclass
class ExternalIdentity:
    """Identity as reported by the provider. Transient, never persisted as-is."""

    subject: str  # provider's stable identifier for this user
    email: str
    email_verified: bool = False
    display_name: str = ""
    given_name: str = ""
    family_name: str = ""
    picture: str = ""
    locale: str = ""
    # Organizational domain hint (Google Workspace "hd"); empty for consumer accounts
    hosted_domain: str = ""
    raw_claims: dict[str, Any] = field(default_factory=dict, repr=False)


class SSOConnector(ABC):
    """Abstract base class for identity provider connectors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g., 'google')."""

    @property
    @abstractmethod
    def workspace_domain(self) -> str:
        """Configured organizational domain, or empty when unrestricted."""

    @abstractmethod
    def build_authorization_url(self, state: str) -> str:
        """Build the provider authorization URL carrying ``state``.

        When a workspace domain is configured, the URL also carries the
        provider's account-chooser hint. The hint is UX only and must be
        re-validated after the exchange.
        """

    @abstractmethod
    async def exchange_code(self, code: str) -> ProviderToken:
        """Exchange an authorization code for provider tokens.

        Raises:
            ExchangeError: on transport failure or provider rejection.
        """

    @abstractmethod
    async def fetch_identity(self, token: ProviderToken) -> ExternalIdentity:
        """Fetch the profile of the user the token was issued to.

        Raises:
            ProfileFetchError: on non-success status or malformed payload.
        """
