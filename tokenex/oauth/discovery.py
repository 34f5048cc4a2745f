"""OAuth 2.0 Authorization Server Metadata (RFC 8414) builder."""

from pydantic import BaseModel

from tokenex.core.settings import AuthSettings
from tokenex.token.jws import ALLOWED_ALGORITHMS
from tokenex.token.types import TOKEN_EXCHANGE_GRANT


class ServerMetadata(BaseModel):
    """.well-known/oauth-authorization-server response."""

    issuer: str
    token_endpoint: str
    jwks_uri: str
    grant_types_supported: list[str]
    token_endpoint_auth_methods_supported: list[str]
    token_endpoint_auth_signing_alg_values_supported: list[str]
    subject_token_issuers: list[str]


def build_metadata(settings: AuthSettings) -> ServerMetadata:
    """Build the server metadata document from settings."""
    return ServerMetadata(
        issuer=settings.issuer,
        token_endpoint=settings.token_endpoint,
        jwks_uri=settings.jwks_uri,
        grant_types_supported=[TOKEN_EXCHANGE_GRANT],
        token_endpoint_auth_methods_supported=["private_key_jwt"],
        token_endpoint_auth_signing_alg_values_supported=sorted(ALLOWED_ALGORITHMS),
        subject_token_issuers=[t.issuer for t in settings.subject_token_issuers],
    )
