"""
Top-level test configuration for Candidate Organizer.
"""

import os

# Ensure test-friendly defaults before settings are loaded
os.environ.setdefault("CANDIDATE_ORGANIZER_SESSION_SECRET", "test-session-secret-not-for-production")
os.environ.setdefault("CANDIDATE_ORGANIZER_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CANDIDATE_ORGANIZER_JSON_LOGS", "false")
os.environ.setdefault("CANDIDATE_ORGANIZER_LOG_LEVEL", "DEBUG")
os.environ.setdefault("CANDIDATE_ORGANIZER_FRONTEND_URL", "http://frontend.test")

from collections.abc import AsyncGenerator, Callable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from candidate_organizer.auth.sso import ExternalIdentity, ProviderToken, SSOConnector  # noqa: E402
from candidate_organizer.db.models import Base  # noqa: E402
from candidate_organizer.services.user_store import SQLUserStore  # noqa: E402


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with the schema created.

    pysqlite's implicit transaction handling breaks SAVEPOINT; the two event
    hooks hand transaction control back to SQLAlchemy.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_transactions(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    factory = async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def user_store(db_session: AsyncSession) -> SQLUserStore:
    return SQLUserStore(db_session)


@pytest.fixture
def make_identity() -> Callable[..., ExternalIdentity]:
    """Factory for provider identities with sensible defaults."""

    def _make(email: str = "alice@co.com", hosted_domain: str = "", **overrides) -> ExternalIdentity:  # type: ignore[no-untyped-def]
        fields = {
            "subject": f"google-{email}",
            "email": email,
            "email_verified": True,
            "display_name": email.split("@")[0].title(),
            "hosted_domain": hosted_domain,
        }
        fields.update(overrides)
        return ExternalIdentity(**fields)

    return _make


class FakeConnector(SSOConnector):
    """In-memory identity provider that records every call it receives."""

    def __init__(self, identity: ExternalIdentity | None = None, workspace_domain: str = "") -> None:
        self.identity = identity
        self._workspace_domain = workspace_domain
        self.exchange_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.exchanged_codes: list[str] = []
        self.fetch_calls = 0

    @property
    def name(self) -> str:
        return "fake"

    @property
    def workspace_domain(self) -> str:
        return self._workspace_domain

    def build_authorization_url(self, state: str) -> str:
        return f"https://idp.test/authorize?state={state}"

    async def exchange_code(self, code: str) -> ProviderToken:
        self.exchanged_codes.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        return ProviderToken(access_token=f"access-{code}")

    async def fetch_identity(self, token: ProviderToken) -> ExternalIdentity:
        self.fetch_calls += 1
        if self.profile_error is not None:
            raise self.profile_error
        assert self.identity is not None, "FakeConnector.identity not set"
        return self.identity


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()
