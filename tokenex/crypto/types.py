"""Type definitions for signing keys and JWKS."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SigningKeyData(BaseModel):
    """An RSA keypair for JWT signing."""

    model_config = ConfigDict(frozen=True)

    kid: str
    private_key_pem: str = Field(repr=False)
    public_key_pem: str
    algorithm: str = "RS256"
    key_size: int
    created_at: datetime
    retired_at: datetime | None = None


class JWKEntry(BaseModel):
    """Single JWK entry in a JWKS response."""

    kty: str = "RSA"
    use: str = "sig"
    alg: str = "RS256"
    kid: str
    n: str
    e: str


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: list[JWKEntry]
