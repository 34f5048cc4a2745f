"""Type definitions for subject tokens, exchange requests and issued tokens."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
JWT_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:jwt"
ACCESS_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:access_token"


class VerifiedClaims(BaseModel):
    """Claim set of a token whose signature, issuer and lifetime were checked.

    Only ``TokenValidator`` constructs these.
    """

    model_config = ConfigDict(frozen=True)

    claims: dict[str, Any]

    @property
    def issuer(self) -> str | None:
        return self.claims.get("iss")

    @property
    def subject(self) -> str | None:
        return self.claims.get("sub")

    @property
    def expires_at(self) -> datetime | None:
        exp = self.claims.get("exp")
        if exp is None:
            return None
        return datetime.fromtimestamp(exp, UTC)


class TokenExchangeRequest(BaseModel):
    """Caller's RFC 8693 exchange parameters."""

    grant_type: str
    subject_token: str
    audience: str
    subject_token_type: str | None = None
    scope: str | None = None

    @property
    def scopes(self) -> list[str]:
        return self.scope.split() if self.scope else []


class IssuedToken(BaseModel):
    """A signed token minted by this server."""

    model_config = ConfigDict(frozen=True)

    serialized: str
    claims: dict[str, Any]
    expires_at: datetime

    @property
    def jwt_id(self) -> str:
        return self.claims["jti"]

    def expires_in(self) -> int:
        """Seconds until expiry, never negative."""
        remaining = (self.expires_at - datetime.now(UTC)).total_seconds()
        return max(int(remaining), 0)
