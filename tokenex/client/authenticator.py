"""Authenticate clients by signed JWT assertion (RFC 7523 private_key_jwt)."""

import logging
from typing import Any

import jwt

from tokenex.client.registry import ClientRegistry
from tokenex.client.types import RegisteredClient
from tokenex.core.errors import ClientAuthFailed, OAuth2Error
from tokenex.token.jws import (
    check_lifetime,
    matching_keys,
    parse_token,
    verify_with_keys,
)

logger = logging.getLogger(__name__)

JWT_BEARER = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class _AssertionRejected(Exception):
    """Internal cause; never shown to the caller."""


def _audiences(claims: dict[str, Any]) -> list[str]:
    aud = claims.get("aud")
    if isinstance(aud, str):
        return [aud]
    if isinstance(aud, list):
        return [a for a in aud if isinstance(a, str)]
    return []


class ClientAuthenticator:
    """Verifies a client assertion against the client's registered keys.

    All failures are reported as the same ``ClientAuthFailed`` so callers
    cannot tell unknown clients from bad signatures or stale assertions.
    """

    def __init__(
        self,
        registry: ClientRegistry,
        token_endpoint: str,
        clock_skew_seconds: int,
    ) -> None:
        self._registry = registry
        self._token_endpoint = token_endpoint
        self._leeway = clock_skew_seconds

    async def authenticate(self, client_assertion: str) -> RegisteredClient:
        try:
            return await self._authenticate(client_assertion)
        except (OAuth2Error, _AssertionRejected) as exc:
            logger.info("Client authentication failed: %s", exc)
            raise ClientAuthFailed() from None
        except Exception:
            logger.exception("Client authentication failed unexpectedly")
            raise ClientAuthFailed() from None

    async def _authenticate(self, client_assertion: str) -> RegisteredClient:
        parsed = parse_token(client_assertion)
        client_id = parsed.unverified_claims.get("sub")
        if not isinstance(client_id, str) or not client_id:
            raise _AssertionRejected("assertion has no sub")

        client = await self._registry.find(client_id)
        if client is None:
            raise _AssertionRejected(f"unknown client {client_id!r}")
        if not client.has_verification_keys:
            raise _AssertionRejected(f"client {client_id!r} has no registered keys")

        try:
            key_set = jwt.PyJWKSet.from_dict(client.jwks)
        except (jwt.PyJWKError, jwt.PyJWKSetError) as exc:
            raise _AssertionRejected(f"client {client_id!r} has unusable keys") from exc
        claims = verify_with_keys(parsed, matching_keys(parsed, key_set))

        if claims.get("iss") != client_id:
            raise _AssertionRejected(f"assertion iss does not match sub {client_id!r}")
        if self._token_endpoint not in _audiences(claims):
            raise _AssertionRejected(
                f"assertion for {client_id!r} not addressed to {self._token_endpoint}"
            )
        check_lifetime(claims, self._leeway)

        logger.debug("Authenticated client %s", client_id)
        return client
