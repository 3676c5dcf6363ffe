"""Fixtures for exercising the API through the ASGI app.

The lifespan handler is not run: the database dependency is overridden with
the in-memory session and the identity provider is replaced with a fake.
"""

from collections.abc import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from candidate_organizer.api.app import create_application
from candidate_organizer.auth.connectors import set_connector
from candidate_organizer.auth.sessions import get_session_manager
from candidate_organizer.db.models import User, UserRole
from candidate_organizer.db.session import get_db


@pytest.fixture
def app(db_session, fake_connector) -> Generator[FastAPI]:
    application = create_application()

    async def _override_get_db():  # type: ignore[no-untyped-def]
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    application.dependency_overrides[get_db] = _override_get_db
    set_connector(fake_connector)
    yield application
    set_connector(None)
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c


@pytest.fixture
def make_user(user_store, db_session) -> Callable:
    """Create and commit a user directly in the store."""

    async def _make(email: str = "alice@co.com", role: UserRole = UserRole.USER) -> User:
        user = await user_store.create(
            email=email,
            display_name=email.split("@")[0].title(),
            role=role,
            workspace_domain=email.split("@")[1],
        )
        await db_session.commit()
        return user

    return _make


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {get_session_manager().issue(user)}"}


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    return bearer
