"""Exception taxonomy for authentication and user management.

Every error carries the HTTP status it maps to. The login flow converts these
into redirect reasons; authenticated endpoints render them as JSON bodies.
"""

from fastapi import status


class AuthError(Exception):
    """Base exception for the authentication subsystem."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class UnauthorizedError(AuthError):
    """Missing, invalid or expired credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidTokenError(UnauthorizedError):
    """Session token failed signature, expiry or structure checks."""


class ForbiddenError(AuthError):
    """Authenticated user lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN


class DomainMismatchError(ForbiddenError):
    """Identity is outside the configured workspace domain."""


class UpstreamError(AuthError):
    """The identity provider failed or rejected a request."""

    status_code = status.HTTP_502_BAD_GATEWAY


class ExchangeError(UpstreamError):
    """Authorization code could not be exchanged for a provider token."""


class ProfileFetchError(UpstreamError):
    """Provider profile could not be fetched or parsed."""


class PersistenceError(AuthError):
    """The user store failed. Safe for the caller to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class UserExistsError(PersistenceError):
    """A user with this email already exists."""

    status_code = status.HTTP_409_CONFLICT


class UserNotFoundError(AuthError):
    """No user with the requested id."""

    status_code = status.HTTP_404_NOT_FOUND
