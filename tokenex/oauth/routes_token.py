"""RFC 8693 token exchange endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Form, Response

from tokenex.core.errors import AuthorizationDenied, InvalidRequest
from tokenex.oauth.deps import AppComponents, AuthenticatedClient
from tokenex.oauth.types import TokenResponse
from tokenex.token.types import JWT_TOKEN_TYPE, TokenExchangeRequest

router = APIRouter()

logger = logging.getLogger(__name__)

OptionalForm = Annotated[str | None, Form()]


def _build_request(
    grant_type: str | None,
    subject_token: str | None,
    subject_token_type: str | None,
    audience: str | None,
    scope: str | None,
) -> TokenExchangeRequest:
    """Check required form fields and bundle them."""
    if not grant_type:
        raise InvalidRequest("missing grant_type")
    if not subject_token:
        raise InvalidRequest("missing subject_token")
    if not audience:
        raise InvalidRequest("missing audience")
    if subject_token_type is not None and subject_token_type != JWT_TOKEN_TYPE:
        raise InvalidRequest(f"unsupported subject_token_type {subject_token_type}")
    return TokenExchangeRequest(
        grant_type=grant_type,
        subject_token=subject_token,
        subject_token_type=subject_token_type,
        audience=audience,
        scope=scope or None,
    )


@router.post("/oauth/token")
async def token_endpoint(
    response: Response,
    client: AuthenticatedClient,
    components: AppComponents,
    grant_type: OptionalForm = None,
    subject_token: OptionalForm = None,
    subject_token_type: OptionalForm = None,
    audience: OptionalForm = None,
    scope: OptionalForm = None,
) -> TokenResponse:
    """POST /oauth/token -- exchange a subject token for one of ours."""
    request = _build_request(grant_type, subject_token, subject_token_type, audience, scope)

    decision = components.authorizer.authorize(client, request)
    if not decision.allowed:
        logger.info("Exchange denied for %s: %s", client.client_id, decision.reason)
        raise AuthorizationDenied(decision.reason, decision.error)

    issued = await components.issuer.issue_token_for(client, request)
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(
        access_token=issued.serialized,
        expires_in=issued.expires_in(),
        scope=request.scope or request.audience,
    )
