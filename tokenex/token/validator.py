"""Verify subject tokens against the key set of an expected issuer."""

import logging

from tokenex.core.errors import InvalidSignature, UntrustedIssuer
from tokenex.token.jws import (
    ParsedToken,
    check_lifetime,
    matching_keys,
    parse_token,
    verify_with_keys,
)
from tokenex.token.types import VerifiedClaims
from tokenex.trust.resolver import TrustRegistry

logger = logging.getLogger(__name__)


class TokenValidator:
    """Signature, issuer and lifetime checks, in that order.

    The key set is bound to ``expected_issuer`` before any claim inside the
    token is looked at, so a token cannot pick its own trust anchor.
    """

    def __init__(self, trust: TrustRegistry, clock_skew_seconds: int) -> None:
        self._trust = trust
        self._leeway = clock_skew_seconds

    async def validate(self, token: str | ParsedToken, expected_issuer: str) -> VerifiedClaims:
        parsed = parse_token(token) if isinstance(token, str) else token

        key_set = await self._trust.resolve(expected_issuer)
        keys = matching_keys(parsed, key_set)
        if not keys and parsed.kid is not None:
            # Unknown kid: the issuer may have rotated keys since the last fetch.
            key_set = await self._trust.resolve(expected_issuer, force_refresh=True)
            keys = matching_keys(parsed, key_set)

        try:
            claims = verify_with_keys(parsed, keys)
        except InvalidSignature:
            logger.info(
                "Rejected token for issuer %s: bad signature (kid=%s, alg=%s)",
                expected_issuer,
                parsed.kid,
                parsed.algorithm,
            )
            raise

        if claims.get("iss") != expected_issuer:
            logger.warning(
                "Rejected token: iss %r does not match expected issuer %s",
                claims.get("iss"),
                expected_issuer,
            )
            raise UntrustedIssuer()

        check_lifetime(claims, self._leeway)
        return VerifiedClaims(claims=claims)
