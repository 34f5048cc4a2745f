"""Internal API used by the client registration collaborator."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tokenex.api.deps import require_registration_token
from tokenex.api.schemas import ClientRegistrationPayload, ClientRegistrationResponse
from tokenex.db.engine import get_session
from tokenex.db.repo_client import (
    ClientUpsertData,
    delete_client,
    get_client,
    upsert_client,
)

router = APIRouter(prefix="/registration", tags=["registration"])

logger = logging.getLogger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_session)]
RegistrationToken = Annotated[str, Depends(require_registration_token)]


@router.put("/clients/{client_id}")
async def register_client(
    client_id: str,
    payload: ClientRegistrationPayload,
    db: DbSession,
    _token: RegistrationToken,
) -> ClientRegistrationResponse:
    """PUT /registration/clients/{client_id} -- create or replace a client."""
    entity = await upsert_client(
        db,
        ClientUpsertData(client_id=client_id, **payload.model_dump()),
    )
    logger.info("Registered client %s", client_id)
    return ClientRegistrationResponse.model_validate(entity)


@router.get("/clients/{client_id}")
async def lookup_client(
    client_id: str,
    db: DbSession,
    _token: RegistrationToken,
) -> ClientRegistrationResponse:
    """GET /registration/clients/{client_id}."""
    entity = await get_client(db, client_id)
    if entity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return ClientRegistrationResponse.model_validate(entity)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_client(
    client_id: str,
    db: DbSession,
    _token: RegistrationToken,
) -> None:
    """DELETE /registration/clients/{client_id} -- deactivate a client."""
    if not await delete_client(db, client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    logger.info("Deactivated client %s", client_id)
