"""FastAPI dependencies for the OAuth endpoints."""

from typing import Annotated

from fastapi import Depends, Form, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tokenex.client.authenticator import JWT_BEARER, ClientAuthenticator
from tokenex.client.registry import DatabaseClientRegistry
from tokenex.client.types import RegisteredClient
from tokenex.core.components import Components
from tokenex.core.errors import ClientAuthFailed
from tokenex.db.engine import get_session


def get_components(request: Request) -> Components:
    return request.app.state.components


AppComponents = Annotated[Components, Depends(get_components)]


def get_authenticator(
    db: Annotated[AsyncSession, Depends(get_session)],
    components: AppComponents,
) -> ClientAuthenticator:
    settings = components.settings
    return ClientAuthenticator(
        DatabaseClientRegistry(db),
        token_endpoint=settings.token_endpoint,
        clock_skew_seconds=settings.clock_skew_seconds,
    )


async def require_client(
    authenticator: Annotated[ClientAuthenticator, Depends(get_authenticator)],
    client_assertion_type: Annotated[str | None, Form()] = None,
    client_assertion: Annotated[str | None, Form()] = None,
) -> RegisteredClient:
    """Authenticate the caller before the endpoint body runs."""
    if client_assertion_type != JWT_BEARER or not client_assertion:
        raise ClientAuthFailed()
    return await authenticator.authenticate(client_assertion)


AuthenticatedClient = Annotated[RegisteredClient, Depends(require_client)]
