"""Shared test fixtures for tokenex."""

from collections.abc import AsyncIterator

import pytest
from fakes import (
    CLIENT_ID,
    REGISTRATION_TOKEN,
    SERVER_ISSUER,
    TARGET_AUDIENCE,
    ClientKeys,
    FakeIdentityProvider,
    IdpNetwork,
)
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tokenex.core.app import create_app
from tokenex.core.settings import AuthSettings
from tokenex.db.base import BaseEntity
from tokenex.db.engine import get_session
from tokenex.db.repo_client import ClientUpsertData, upsert_client


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("AUTH_ISSUER_URL", SERVER_ISSUER)


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def idp() -> FakeIdentityProvider:
    """The trusted external identity provider I."""
    return FakeIdentityProvider("https://idp.example.com")


@pytest.fixture
def network(idp: FakeIdentityProvider) -> IdpNetwork:
    return IdpNetwork(idp)


@pytest.fixture
def settings(idp: FakeIdentityProvider) -> AuthSettings:
    return AuthSettings(
        issuer_url=SERVER_ISSUER,
        subject_token_issuers=[idp.trusted()],
        registration_token=REGISTRATION_TOKEN,
    )


@pytest.fixture
def client_keys() -> ClientKeys:
    return ClientKeys(CLIENT_ID)


@pytest.fixture
async def registered_client(
    db_session: AsyncSession, client_keys: ClientKeys
) -> ClientKeys:
    """Register client C, allowed to request api://target."""
    await upsert_client(
        db_session,
        ClientUpsertData(
            client_id=CLIENT_ID,
            client_name="Client C",
            jwks=client_keys.jwks(),
            allowed_audiences=[TARGET_AUDIENCE],
            allowed_scopes=["read", "write"],
        ),
    )
    return client_keys


@pytest.fixture
async def app(
    db_session: AsyncSession, settings: AuthSettings, network: IdpNetwork
) -> AsyncIterator[FastAPI]:
    """Application with the fake IdP network and DB session override."""
    http_client = network.client()
    application = create_app(settings, http_client)

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    application.dependency_overrides[get_session] = _override_session
    yield application
    await http_client.aclose()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client against the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
