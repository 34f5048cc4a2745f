"""Pydantic schemas for the client registration API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientRegistrationPayload(BaseModel):
    """Request body for PUT /registration/clients/{client_id}."""

    client_name: str = ""
    jwks: dict[str, Any]
    allowed_audiences: list[str] = Field(default_factory=list)
    allowed_scopes: list[str] = Field(default_factory=list)

    @field_validator("jwks")
    @classmethod
    def _has_keys(cls, value: dict[str, Any]) -> dict[str, Any]:
        keys = value.get("keys")
        if not isinstance(keys, list) or not keys:
            raise ValueError("jwks must contain at least one key")
        return value


class ClientRegistrationResponse(BaseModel):
    """A stored client registration."""

    model_config = ConfigDict(from_attributes=True)

    client_id: str
    client_name: str
    jwks: dict[str, Any]
    allowed_audiences: list[str]
    allowed_scopes: list[str]
