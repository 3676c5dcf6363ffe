"""User store: persistence operations the auth subsystem consumes.

Defines the UserStore Protocol and its SQLAlchemy implementation. All
database failures surface as PersistenceError; nothing here retries.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from candidate_organizer.db.models import (
    BOOTSTRAP_ADMIN_CLAIM,
    BootstrapClaim,
    User,
    UserRole,
    generate_uuid7,
    utc_now,
)
from candidate_organizer.errors import PersistenceError, UserExistsError, UserNotFoundError
from candidate_organizer.logging_config import get_logger

logger = get_logger(__name__)


@runtime_checkable
class UserStore(Protocol):
    """Operations on user records needed by login, sessions and admin routes."""

    async def create(
        self,
        email: str,
        display_name: str,
        role: UserRole,
        workspace_domain: str,
        user_id: uuid.UUID | None = None,
    ) -> User: ...

    async def get_by_id(self, user_id: uuid.UUID | str) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def list_users(self) -> list[User]: ...

    async def promote_to_admin(self, user_id: uuid.UUID | str) -> User: ...

    async def update_profile(
        self, user: User, display_name: str, workspace_domain: str
    ) -> User: ...

    async def count(self) -> int: ...

    async def is_empty(self) -> bool: ...

    async def claim_bootstrap_admin(self, user_id: uuid.UUID) -> bool: ...


def _coerce_id(user_id: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        return None


@contextmanager
def _persistence_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into PersistenceError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("User store operation failed", operation=operation, error=str(e))
        raise PersistenceError(f"User store {operation} failed") from e


class SQLUserStore:
    """UserStore backed by a request-scoped AsyncSession.

    The session's transaction is owned by the caller (``get_db`` commits or
    rolls back), so a bootstrap claim and the user insert that follows it
    commit together or not at all.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(
        self,
        email: str,
        display_name: str,
        role: UserRole,
        workspace_domain: str,
        user_id: uuid.UUID | None = None,
    ) -> User:
        user = User(
            id=user_id or generate_uuid7(),
            email=email,
            display_name=display_name,
            role=UserRole(role),
            workspace_domain=workspace_domain,
        )
        with _persistence_errors("create"):
            try:
                async with self._db.begin_nested():
                    self._db.add(user)
                    await self._db.flush()
            except IntegrityError as e:
                raise UserExistsError(f"User {email} already exists") from e

        logger.info("User created", user_id=str(user.id), email=email, role=user.role.value)
        return user

    async def get_by_id(self, user_id: uuid.UUID | str) -> User | None:
        parsed = _coerce_id(user_id)
        if parsed is None:
            return None
        with _persistence_errors("get_by_id"):
            return await self._db.get(User, parsed)

    async def get_by_email(self, email: str) -> User | None:
        with _persistence_errors("get_by_email"):
            result = await self._db.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def list_users(self) -> list[User]:
        with _persistence_errors("list_users"):
            result = await self._db.execute(
                select(User).order_by(User.created_at.desc(), User.id.desc())
            )
            return list(result.scalars().all())

    async def promote_to_admin(self, user_id: uuid.UUID | str) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError("User not found")

        if user.role != UserRole.ADMIN:
            with _persistence_errors("promote_to_admin"):
                user.role = UserRole.ADMIN
                user.updated_at = utc_now()
                await self._db.flush()
            logger.info("User promoted to admin", user_id=str(user.id), email=user.email)
        return user

    async def update_profile(self, user: User, display_name: str, workspace_domain: str) -> User:
        if user.display_name == display_name and user.workspace_domain == workspace_domain:
            return user
        with _persistence_errors("update_profile"):
            user.display_name = display_name
            user.workspace_domain = workspace_domain
            user.updated_at = utc_now()
            await self._db.flush()
        return user

    async def count(self) -> int:
        with _persistence_errors("count"):
            result = await self._db.execute(select(func.count()).select_from(User))
            return int(result.scalar_one())

    async def is_empty(self) -> bool:
        return await self.count() == 0

    async def claim_bootstrap_admin(self, user_id: uuid.UUID) -> bool:
        """Atomically take the first-admin slot for ``user_id``.

        Returns False when another transaction already holds the claim. A
        concurrent claimant blocks on the primary key until the holder
        commits or rolls back.
        """
        with _persistence_errors("claim_bootstrap_admin"):
            try:
                async with self._db.begin_nested():
                    self._db.add(BootstrapClaim(name=BOOTSTRAP_ADMIN_CLAIM, user_id=user_id))
                    await self._db.flush()
            except IntegrityError:
                logger.info("Bootstrap admin already claimed")
                return False

        logger.info("Bootstrap admin claimed", user_id=str(user_id))
        return True
