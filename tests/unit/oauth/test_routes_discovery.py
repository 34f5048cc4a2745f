"""Tests for the metadata and JWKS endpoints."""

import jwt
from fakes import SERVER_ISSUER, FakeIdentityProvider
from fastapi import FastAPI
from httpx import AsyncClient

from tokenex.token.types import TOKEN_EXCHANGE_GRANT


class TestServerMetadata:
    """Tests for GET /.well-known/oauth-authorization-server."""

    async def test_returns_metadata(
        self, client: AsyncClient, idp: FakeIdentityProvider
    ) -> None:
        resp = await client.get("/.well-known/oauth-authorization-server")
        assert resp.status_code == 200
        data = resp.json()
        assert data["issuer"] == SERVER_ISSUER
        assert data["token_endpoint"] == f"{SERVER_ISSUER}/oauth/token"
        assert data["jwks_uri"] == f"{SERVER_ISSUER}/oauth/jwks"
        assert data["grant_types_supported"] == [TOKEN_EXCHANGE_GRANT]
        assert data["token_endpoint_auth_methods_supported"] == ["private_key_jwt"]
        assert data["subject_token_issuers"] == [idp.issuer]


class TestJWKS:
    """Tests for GET /oauth/jwks."""

    async def test_returns_public_keys(self, client: AsyncClient) -> None:
        resp = await client.get("/oauth/jwks")
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, max-age=300"
        keys = resp.json()["keys"]
        assert len(keys) == 1
        assert keys[0]["kty"] == "RSA"
        assert keys[0]["use"] == "sig"
        assert "d" not in keys[0]

    async def test_publishes_new_and_retired_key_after_rotation(
        self, app: FastAPI, client: AsyncClient
    ) -> None:
        signer = app.state.components.signer
        old_kid = signer.public_jwks().keys[0].kid
        new_kid = signer.rotate_key()
        resp = await client.get("/oauth/jwks")
        assert [k["kid"] for k in resp.json()["keys"]] == [new_kid, old_kid]

    async def test_keys_parse_as_jwk_set(self, client: AsyncClient) -> None:
        resp = await client.get("/oauth/jwks")
        key_set = jwt.PyJWKSet.from_dict(resp.json())
        assert len(key_set.keys) == 1
