"""Structural parsing, signature and lifetime checks for compact JWS tokens.

Shared by subject-token validation and client assertion authentication.
Nothing in a ``ParsedToken`` is trusted until ``verify_with_keys`` returns.
"""

import math
from datetime import UTC, datetime
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict

from tokenex.core.errors import (
    InvalidSignature,
    MalformedToken,
    TokenExpiredOrNotYetValid,
)

# Asymmetric algorithms only, mapped to the JWK key type that can verify them.
ALLOWED_ALGORITHMS: dict[str, str] = {
    "RS256": "RSA",
    "RS384": "RSA",
    "RS512": "RSA",
    "PS256": "RSA",
    "PS384": "RSA",
    "PS512": "RSA",
    "ES256": "EC",
    "ES384": "EC",
    "ES512": "EC",
    "EdDSA": "OKP",
}

_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
    "require": [],
}


class ParsedToken(BaseModel):
    """A structurally valid token whose contents are not yet verified."""

    model_config = ConfigDict(frozen=True)

    raw: str
    header: dict[str, Any]
    unverified_claims: dict[str, Any]

    @property
    def algorithm(self) -> str | None:
        return self.header.get("alg")

    @property
    def kid(self) -> str | None:
        return self.header.get("kid")

    @property
    def unverified_issuer(self) -> str | None:
        iss = self.unverified_claims.get("iss")
        return iss if isinstance(iss, str) else None


def parse_token(token: str) -> ParsedToken:
    """Parse a compact JWS without verifying it."""
    try:
        header = jwt.get_unverified_header(token)
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise MalformedToken() from exc
    if not isinstance(header.get("alg"), str):
        raise MalformedToken("token header has no alg")
    return ParsedToken(raw=token, header=header, unverified_claims=claims)


def matching_keys(token: ParsedToken, key_set: jwt.PyJWKSet) -> list[jwt.PyJWK]:
    """Keys from the set that could have signed this token.

    Selection is by the header ``kid`` when present, otherwise every signing
    key of the right type is a candidate.
    """
    key_type = ALLOWED_ALGORITHMS.get(token.algorithm or "")
    if key_type is None:
        return []
    return [
        jwk
        for jwk in key_set.keys
        if jwk.key_type == key_type
        and jwk.public_key_use in (None, "sig")
        and (token.kid is None or jwk.key_id == token.kid)
    ]


def verify_with_keys(token: ParsedToken, keys: list[jwt.PyJWK]) -> dict[str, Any]:
    """Verify the signature against the candidate keys and return the claims."""
    algorithm = token.algorithm
    if algorithm not in ALLOWED_ALGORITHMS:
        raise InvalidSignature(f"algorithm {algorithm!r} is not accepted")
    if not keys:
        raise InvalidSignature("no verification key matches the token")
    for jwk in keys:
        try:
            return jwt.decode(
                token.raw,
                key=jwk.key,
                algorithms=[algorithm],
                options=_SIGNATURE_ONLY,
            )
        except jwt.InvalidSignatureError:
            continue
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise InvalidSignature() from exc
    raise InvalidSignature()


def _is_timestamp(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def check_lifetime(claims: dict[str, Any], leeway_seconds: int) -> None:
    """Require ``exp`` and enforce ``nbf <= now <= exp`` within the leeway."""
    now = datetime.now(UTC).timestamp()
    exp = claims.get("exp")
    if not _is_timestamp(exp):
        raise TokenExpiredOrNotYetValid("token has no valid exp claim")
    if now > exp + leeway_seconds:
        raise TokenExpiredOrNotYetValid("token is expired")
    nbf = claims.get("nbf")
    if nbf is None:
        return
    if not _is_timestamp(nbf):
        raise TokenExpiredOrNotYetValid("token has an invalid nbf claim")
    if now + leeway_seconds < nbf:
        raise TokenExpiredOrNotYetValid("token is not yet valid")
