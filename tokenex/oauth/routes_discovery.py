"""Authorization server metadata and JWKS endpoints."""

from fastapi import APIRouter, Response

from tokenex.crypto.types import JWKSResponse
from tokenex.oauth.deps import AppComponents
from tokenex.oauth.discovery import ServerMetadata, build_metadata

router = APIRouter()

JWKS_CACHE_CONTROL = "public, max-age=300"


@router.get("/.well-known/oauth-authorization-server")
async def server_metadata(components: AppComponents) -> ServerMetadata:
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return build_metadata(components.settings)


@router.get("/oauth/jwks")
async def jwks(response: Response, components: AppComponents) -> JWKSResponse:
    """JSON Web Key Set endpoint."""
    response.headers["Cache-Control"] = JWKS_CACHE_CONTROL
    return components.signer.public_jwks()
