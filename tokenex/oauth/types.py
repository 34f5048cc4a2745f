"""Type definitions for token endpoint responses."""

from pydantic import BaseModel

from tokenex.token.types import ACCESS_TOKEN_TYPE


class TokenResponse(BaseModel):
    """RFC 8693 token exchange response."""

    access_token: str
    issued_token_type: str = ACCESS_TOKEN_TYPE
    token_type: str = "Bearer"
    expires_in: int
    scope: str
