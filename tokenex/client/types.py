"""Type definitions for registered clients."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegisteredClient(BaseModel):
    """A client allowed to call the token endpoint."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    client_id: str
    client_name: str = ""
    jwks: dict[str, Any] = Field(default_factory=dict)
    allowed_audiences: list[str] = Field(default_factory=list)
    allowed_scopes: list[str] = Field(default_factory=list)

    @property
    def has_verification_keys(self) -> bool:
        return bool(self.jwks.get("keys"))
