"""Token exchange orchestration: select, validate, sign."""

import logging

from tokenex.client.types import RegisteredClient
from tokenex.core.errors import UnknownIssuer
from tokenex.crypto.signer import TokenSigner
from tokenex.token.jws import ParsedToken, parse_token
from tokenex.token.types import IssuedToken, TokenExchangeRequest
from tokenex.token.validator import TokenValidator
from tokenex.trust.resolver import TrustRegistry

logger = logging.getLogger(__name__)


def peek_issuer(subject_token: str, trust: TrustRegistry) -> tuple[ParsedToken, str]:
    """Pick the issuer to validate against from the *unverified* ``iss``.

    The hint is only used to choose a key set. ``TokenValidator`` verifies the
    signature with that issuer's keys and re-checks ``iss`` afterwards.
    """
    parsed = parse_token(subject_token)
    hinted = parsed.unverified_issuer
    if hinted is None:
        raise UnknownIssuer("subject token has no iss claim")
    trust.source_for(hinted)
    return parsed, hinted


class TokenIssuer:
    """Exchanges a verified subject token for a token signed by this server."""

    def __init__(
        self,
        signer: TokenSigner,
        trust: TrustRegistry,
        validator: TokenValidator,
    ) -> None:
        self._signer = signer
        self._trust = trust
        self._validator = validator

    async def issue_token_for(
        self, client: RegisteredClient, request: TokenExchangeRequest
    ) -> IssuedToken:
        parsed, hinted_issuer = peek_issuer(request.subject_token, self._trust)
        verified = await self._validator.validate(parsed, hinted_issuer)
        logger.debug(
            "Validated subject token sub=%s iss=%s for client %s",
            verified.subject,
            verified.issuer,
            client.client_id,
        )
        return self._signer.issue(client, verified, request.audience)
