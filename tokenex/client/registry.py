"""Lookup contract between client authentication and client storage."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from tokenex.client.types import RegisteredClient
from tokenex.db.repo_client import get_client


class ClientRegistry(Protocol):
    async def find(self, client_id: str) -> RegisteredClient | None: ...


class DatabaseClientRegistry:
    """Registered clients stored in the ``registered_clients`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(self, client_id: str) -> RegisteredClient | None:
        entity = await get_client(self._session, client_id)
        if entity is None:
            return None
        return RegisteredClient.model_validate(entity)
