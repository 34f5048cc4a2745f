"""Issue RS256-signed tokens from verified subject token claims."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import jwt
import uuid_utils

from tokenex.client.types import RegisteredClient
from tokenex.crypto.keys import KeyRing
from tokenex.crypto.types import JWKSResponse
from tokenex.token.types import IssuedToken, VerifiedClaims

logger = logging.getLogger(__name__)


class TokenSigner:
    """Owns the key ring and mints tokens on behalf of this server."""

    def __init__(self, key_ring: KeyRing, issuer: str, token_expiry_seconds: int) -> None:
        self._key_ring = key_ring
        self._issuer = issuer
        self._token_expiry = timedelta(seconds=token_expiry_seconds)

    @property
    def issuer(self) -> str:
        return self._issuer

    def public_jwks(self) -> JWKSResponse:
        """Public halves of every published signing key."""
        return self._key_ring.public_jwks()

    def rotate_key(self) -> str:
        """Start signing with a fresh key; returns the new kid."""
        key = self._key_ring.rotate()
        logger.info("Rotated signing key, new kid=%s", key.kid)
        return key.kid

    def issue(
        self,
        client: RegisteredClient,
        verified: VerifiedClaims,
        audience: str,
    ) -> IssuedToken:
        """Carry over the verified claims and stamp this server's authority."""
        now = datetime.now(UTC).replace(microsecond=0)
        expires_at = now + self._token_expiry
        issued_at = int(now.timestamp())

        claims = dict(verified.claims)
        claims["iss"] = self._issuer
        claims["exp"] = int(expires_at.timestamp())
        claims["nbf"] = issued_at
        claims["iat"] = issued_at
        claims["jti"] = str(uuid_utils.uuid4())
        claims["aud"] = audience
        claims["client_id"] = client.client_id
        # Unconditional: replaces any idp claim carried over from the subject token.
        if verified.issuer is not None:
            claims["idp"] = verified.issuer

        key = self._key_ring.active
        serialized = jwt.encode(
            claims,
            key.private_key_pem,
            algorithm=key.algorithm,
            headers={"kid": key.kid},
        )
        logger.info(
            "Issued token jti=%s client_id=%s aud=%s idp=%s",
            claims["jti"],
            client.client_id,
            audience,
            claims.get("idp"),
        )
        return IssuedToken(serialized=serialized, claims=claims, expires_at=expires_at)


async def run_key_rotation(signer: TokenSigner, interval_seconds: float) -> None:
    """Rotate ``signer``'s key every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            signer.rotate_key()
        except Exception:
            logger.exception("Scheduled signing key rotation failed")
