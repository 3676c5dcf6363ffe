"""Workspace domain restriction.

The account-chooser hint sent to Google can be stripped by the user, so the
domain is always re-checked here after the code exchange.
"""

from candidate_organizer.auth.sso import ExternalIdentity
from candidate_organizer.errors import DomainMismatchError


def email_domain(email: str) -> str | None:
    """Return the lower-cased domain part of ``email``, or None if malformed."""
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain:
        return None
    return domain.lower()


def validate_workspace_domain(identity: ExternalIdentity, required_domain: str) -> None:
    """Fail closed unless ``identity`` belongs to ``required_domain``.

    An empty ``required_domain`` means unrestricted. Otherwise the hosted
    domain hint decides when present; only when it is absent is the email's
    domain part compared.

    Raises:
        DomainMismatchError: when the identity is outside the workspace.
    """
    required = required_domain.strip().lower()
    if not required:
        return

    if identity.hosted_domain:
        hosted = identity.hosted_domain.lower()
        if hosted != required:
            raise DomainMismatchError(
                f"hosted domain {hosted} does not match required workspace domain {required}"
            )
        return

    domain = email_domain(identity.email)
    if domain is None:
        raise DomainMismatchError("invalid email format")

    if domain != required:
        raise DomainMismatchError(
            f"email domain {domain} does not match required workspace domain {required}"
        )


def workspace_domain_for(identity: ExternalIdentity) -> str:
    """Workspace domain recorded on a new user: hosted domain, else email domain."""
    if identity.hosted_domain:
        return identity.hosted_domain.lower()
    return email_domain(identity.email) or ""
