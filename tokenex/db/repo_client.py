"""Repository for registered client operations."""

from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tokenex.db.models_client import RegisteredClientEntity


class ClientUpsertData(BaseModel):
    """Parameters for creating or updating a registered client."""

    client_id: str
    client_name: str = ""
    jwks: dict[str, Any] = Field(default_factory=dict)
    allowed_audiences: list[str] = Field(default_factory=list)
    allowed_scopes: list[str] = Field(default_factory=list)


async def get_client(
    session: AsyncSession, client_id: str
) -> RegisteredClientEntity | None:
    """Look up an active client by ID."""
    stmt = select(RegisteredClientEntity).where(
        RegisteredClientEntity.client_id == client_id,
        RegisteredClientEntity.is_active.is_(True),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_client(
    session: AsyncSession, data: ClientUpsertData
) -> RegisteredClientEntity:
    """Create the client, or replace its registration if it exists."""
    existing = await session.get(RegisteredClientEntity, data.client_id)
    if existing is not None:
        existing.client_name = data.client_name
        existing.jwks = data.jwks
        existing.allowed_audiences = data.allowed_audiences
        existing.allowed_scopes = data.allowed_scopes
        existing.is_active = True
        await session.flush()
        return existing

    entity = RegisteredClientEntity(
        client_id=data.client_id,
        client_name=data.client_name,
        jwks=data.jwks,
        allowed_audiences=data.allowed_audiences,
        allowed_scopes=data.allowed_scopes,
        is_active=True,
    )
    session.add(entity)
    await session.flush()
    return entity


async def delete_client(session: AsyncSession, client_id: str) -> bool:
    """Deactivate a client. Returns False if it was not registered."""
    entity = await get_client(session, client_id)
    if entity is None:
        return False
    entity.is_active = False
    await session.flush()
    return True
