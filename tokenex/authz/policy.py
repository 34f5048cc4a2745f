"""Exchange authorization policies.

A policy answers ``authorize(client, request) -> Decision``. Policies are
combined with ``AllOf``: every one must allow, and the first denial wins.
"""

from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from tokenex.client.types import RegisteredClient
from tokenex.token.types import TOKEN_EXCHANGE_GRANT, TokenExchangeRequest


class Decision(BaseModel):
    """Outcome of an authorization check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str = ""
    error: str = "access_denied"

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, error: str = "access_denied") -> "Decision":
        return cls(allowed=False, reason=reason, error=error)


class ExchangeAuthorizer(Protocol):
    def authorize(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> Decision: ...


class GrantTypeAuthorizer:
    """Only the token exchange grant is served."""

    def authorize(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> Decision:
        if request.grant_type != TOKEN_EXCHANGE_GRANT:
            return Decision.deny(
                f"grant_type {request.grant_type!r} is not supported",
                "unsupported_grant_type",
            )
        return Decision.allow()


class AudienceAuthorizer:
    """Target audience must be registered for the client."""

    def authorize(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> Decision:
        if request.audience not in client.allowed_audiences:
            return Decision.deny(
                f"client {client.client_id} may not request audience {request.audience}",
                "invalid_target",
            )
        return Decision.allow()


class ScopeAuthorizer:
    """Every requested scope must be registered for the client."""

    def authorize(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> Decision:
        denied = [s for s in request.scopes if s not in client.allowed_scopes]
        if denied:
            return Decision.deny(
                f"client {client.client_id} may not request scope {' '.join(denied)}",
                "invalid_scope",
            )
        return Decision.allow()


class AllOf:
    """Logical AND over authorizers, short-circuiting on the first denial."""

    def __init__(self, authorizers: Sequence[ExchangeAuthorizer]) -> None:
        self._authorizers = tuple(authorizers)

    def authorize(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> Decision:
        for authorizer in self._authorizers:
            decision = authorizer.authorize(client, request)
            if not decision.allowed:
                return decision
        return Decision.allow()


def default_authorizer() -> AllOf:
    return AllOf([GrantTypeAuthorizer(), AudienceAuthorizer(), ScopeAuthorizer()])
