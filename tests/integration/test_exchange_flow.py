"""Integration test: register a client, exchange tokens, verify the result."""

import json
from collections.abc import AsyncIterator

import jwt
import pytest
from fakes import SERVER_ISSUER, ClientKeys, FakeIdentityProvider, IdpNetwork
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tokenex.core.app import create_app
from tokenex.db.engine import get_session
from tokenex.token.types import JWT_TOKEN_TYPE, TOKEN_EXCHANGE_GRANT

HTTP_OK = 200
HTTP_BAD_REQUEST = 400

REGISTRATION_TOKEN = "integration-registration-token"
AUTH_HEADER = {"Authorization": f"Bearer {REGISTRATION_TOKEN}"}
GATEWAY_ID = "gateway"
BACKEND_AUDIENCE = "api://backend"
DOWNSTREAM_AUDIENCE = "api://downstream"


@pytest.fixture
def partner() -> FakeIdentityProvider:
    return FakeIdentityProvider("https://partner.example.com")


@pytest.fixture
def providers(
    idp: FakeIdentityProvider, partner: FakeIdentityProvider
) -> IdpNetwork:
    return IdpNetwork(idp, partner)


@pytest.fixture(autouse=True)
def _flow_env(
    monkeypatch: pytest.MonkeyPatch,
    idp: FakeIdentityProvider,
    partner: FakeIdentityProvider,
) -> None:
    monkeypatch.setenv("AUTH_ISSUER_URL", SERVER_ISSUER)
    monkeypatch.setenv("AUTH_REGISTRATION_TOKEN", REGISTRATION_TOKEN)
    monkeypatch.setenv("AUTH_JWKS_MIN_REFRESH_INTERVAL_SECONDS", "0")
    monkeypatch.setenv(
        "AUTH_SUBJECT_TOKEN_ISSUERS",
        json.dumps(
            [
                idp.trusted().model_dump(exclude_none=True),
                partner.trusted(discovery=True).model_dump(exclude_none=True),
            ]
        ),
    )


@pytest.fixture
async def flow_client(
    db_session: AsyncSession, providers: IdpNetwork
) -> AsyncIterator[AsyncClient]:
    """App configured from the environment, talking to the fake providers."""
    async with providers.client() as http_client:
        app = create_app(http_client=http_client)

        async def _override_session() -> AsyncIterator[AsyncSession]:
            yield db_session
            await db_session.commit()

        app.dependency_overrides[get_session] = _override_session
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


async def _register(client: AsyncClient, keys: ClientKeys) -> None:
    resp = await client.put(
        f"/registration/clients/{keys.client_id}",
        json={
            "client_name": "API gateway",
            "jwks": keys.jwks(),
            "allowed_audiences": [BACKEND_AUDIENCE, DOWNSTREAM_AUDIENCE],
        },
        headers=AUTH_HEADER,
    )
    assert resp.status_code == HTTP_OK


async def _exchange(
    client: AsyncClient, keys: ClientKeys, subject_token: str, audience: str
):
    return await client.post(
        "/oauth/token",
        data=keys.form(
            grant_type=TOKEN_EXCHANGE_GRANT,
            subject_token=subject_token,
            subject_token_type=JWT_TOKEN_TYPE,
            audience=audience,
        ),
    )


async def _verify_with_published_keys(
    client: AsyncClient, token: str, audience: str
) -> dict:
    resp = await client.get("/oauth/jwks")
    key_set = jwt.PyJWKSet.from_dict(resp.json())
    kid = jwt.get_unverified_header(token)["kid"]
    key = next(k for k in key_set.keys if k.key_id == kid)
    return jwt.decode(
        token, key=key.key, algorithms=["RS256"], audience=audience, issuer=SERVER_ISSUER
    )


@pytest.mark.asyncio
async def test_full_exchange_flow(
    flow_client: AsyncClient,
    idp: FakeIdentityProvider,
    partner: FakeIdentityProvider,
    providers: IdpNetwork,
) -> None:
    """Exchange tokens from two providers, then re-exchange our own token."""
    gateway = ClientKeys(GATEWAY_ID)
    await _register(flow_client, gateway)

    # Step 1: metadata advertises both trusted issuers
    resp = await flow_client.get("/.well-known/oauth-authorization-server")
    assert resp.status_code == HTTP_OK
    assert resp.json()["subject_token_issuers"] == [idp.issuer, partner.issuer]

    # Step 2: exchange a token from the jwks_uri-configured provider
    subject = idp.mint({"email": "alice@example.com"})
    resp = await _exchange(flow_client, gateway, subject, BACKEND_AUDIENCE)
    assert resp.status_code == HTTP_OK
    claims = await _verify_with_published_keys(
        flow_client, resp.json()["access_token"], BACKEND_AUDIENCE
    )
    assert claims["idp"] == idp.issuer
    assert claims["client_id"] == GATEWAY_ID
    assert claims["email"] == "alice@example.com"

    # Step 3: exchange a token from the well-known-configured provider
    resp = await _exchange(flow_client, gateway, partner.mint(), BACKEND_AUDIENCE)
    assert resp.status_code == HTTP_OK
    assert providers.metadata_fetches[partner.issuer] == 1

    # Step 4: re-exchange our own token for a downstream audience
    own_token = resp.json()["access_token"]
    resp = await _exchange(flow_client, gateway, own_token, DOWNSTREAM_AUDIENCE)
    assert resp.status_code == HTTP_OK
    claims = await _verify_with_published_keys(
        flow_client, resp.json()["access_token"], DOWNSTREAM_AUDIENCE
    )
    assert claims["idp"] == SERVER_ISSUER

    # Step 5: provider rotates keys; the next exchange refreshes once
    idp.rotate()
    resp = await _exchange(flow_client, gateway, idp.mint(), BACKEND_AUDIENCE)
    assert resp.status_code == HTTP_OK
    assert providers.jwks_fetches[idp.issuer] == 2


@pytest.mark.asyncio
async def test_cross_issuer_forgery_rejected(
    flow_client: AsyncClient,
    idp: FakeIdentityProvider,
    partner: FakeIdentityProvider,
) -> None:
    """A token naming one provider but signed by another never verifies."""
    gateway = ClientKeys(GATEWAY_ID)
    await _register(flow_client, gateway)

    forged = idp.mint({"iss": partner.issuer})
    resp = await _exchange(flow_client, gateway, forged, BACKEND_AUDIENCE)
    assert resp.status_code == HTTP_BAD_REQUEST
    assert resp.json()["error"] == "invalid_request"

    forged_own = idp.mint({"iss": SERVER_ISSUER})
    resp = await _exchange(flow_client, gateway, forged_own, BACKEND_AUDIENCE)
    assert resp.status_code == HTTP_BAD_REQUEST
