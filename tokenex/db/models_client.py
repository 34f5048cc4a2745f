"""SQLAlchemy model for registered token exchange clients."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from tokenex.db.base import BaseEntity


class RegisteredClientEntity(BaseEntity):
    """A client authenticating with private_key_jwt."""

    __tablename__ = "registered_clients"

    client_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    jwks: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    allowed_audiences: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    allowed_scopes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
