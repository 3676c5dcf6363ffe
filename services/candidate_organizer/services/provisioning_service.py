"""User provisioning on login.

Resolves an external identity to an internal user (get-or-create by email):
1. Existing user: returned as-is (optionally profile-synced)
2. New user: the first user ever created becomes admin, everyone else user
3. Workspace domain taken from the hosted-domain hint, else the email domain

The first-admin decision is an atomic claim on a sentinel row made in the
same transaction as the insert, so two simultaneous first logins cannot both
become admin.
"""

from candidate_organizer.auth.sso import ExternalIdentity
from candidate_organizer.auth.workspace import workspace_domain_for
from candidate_organizer.db.models import User, UserRole, generate_uuid7
from candidate_organizer.errors import UserExistsError
from candidate_organizer.logging_config import get_logger
from candidate_organizer.services.user_store import UserStore

logger = get_logger(__name__)


async def resolve_user(
    store: UserStore,
    identity: ExternalIdentity,
    sync_profile: bool = False,
) -> User:
    """Return the user for ``identity``, creating it on first sight.

    Args:
        store: User store bound to the current transaction.
        identity: Identity fetched from the provider (domain already validated).
        sync_profile: Refresh display name and workspace domain of existing users.

    Raises:
        PersistenceError: if the store fails.
    """
    existing = await store.get_by_email(identity.email)
    if existing is not None:
        if sync_profile:
            existing = await store.update_profile(
                existing,
                display_name=identity.display_name,
                workspace_domain=workspace_domain_for(identity),
            )
        logger.info("Login: existing user", user_id=str(existing.id), email=existing.email)
        return existing

    user_id = generate_uuid7()
    is_first = await store.is_empty() and await store.claim_bootstrap_admin(user_id)
    role = UserRole.ADMIN if is_first else UserRole.USER

    try:
        user = await store.create(
            email=identity.email,
            display_name=identity.display_name,
            role=role,
            workspace_domain=workspace_domain_for(identity),
            user_id=user_id,
        )
    except UserExistsError:
        # A concurrent login for the same email won the insert.
        winner = await store.get_by_email(identity.email)
        if winner is None:
            raise
        logger.info("Login: user created concurrently", email=identity.email)
        return winner

    if is_first:
        logger.warning("Bootstrap: first user granted admin", user_id=str(user.id), email=user.email)
    else:
        logger.info("Login: user provisioned", user_id=str(user.id), email=user.email)
    return user
