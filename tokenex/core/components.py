"""Wire the token exchange components from settings, once per process."""

import logging
from dataclasses import dataclass

import httpx

from tokenex.authz.policy import ExchangeAuthorizer, default_authorizer
from tokenex.core.settings import AuthSettings
from tokenex.crypto.keys import KeyRing, generate_rsa_keypair, load_rsa_keypair
from tokenex.crypto.signer import TokenSigner
from tokenex.token.issuer import TokenIssuer
from tokenex.token.validator import TokenValidator
from tokenex.trust.resolver import TrustRegistry, build_trust_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Components:
    """Everything a request needs, built at startup and shared read-only."""

    settings: AuthSettings
    http_client: httpx.AsyncClient
    signer: TokenSigner
    trust: TrustRegistry
    validator: TokenValidator
    issuer: TokenIssuer
    authorizer: ExchangeAuthorizer


def build_key_ring(settings: AuthSettings) -> KeyRing:
    """Load the configured signing key, or generate one."""
    if settings.signing_key_pem:
        initial = load_rsa_keypair(settings.signing_key_pem)
        logger.info("Loaded signing key kid=%s", initial.kid)
    else:
        initial = generate_rsa_keypair(settings.key_size)
        logger.info("Generated %d-bit signing key kid=%s", settings.key_size, initial.kid)
    return KeyRing(
        initial,
        key_size=settings.key_size,
        retire_grace_seconds=settings.token_expiry_seconds + settings.clock_skew_seconds,
    )


def build_components(
    settings: AuthSettings,
    http_client: httpx.AsyncClient,
    authorizer: ExchangeAuthorizer | None = None,
) -> Components:
    signer = TokenSigner(
        build_key_ring(settings),
        issuer=settings.issuer,
        token_expiry_seconds=settings.token_expiry_seconds,
    )
    trust = build_trust_registry(
        settings.issuer,
        signer,
        settings.subject_token_issuers,
        http_client,
        cache_ttl_seconds=settings.jwks_cache_ttl_seconds,
        fetch_timeout_seconds=settings.jwks_fetch_timeout_seconds,
        min_refresh_interval_seconds=settings.jwks_min_refresh_interval_seconds,
    )
    validator = TokenValidator(trust, clock_skew_seconds=settings.clock_skew_seconds)
    logger.info("Trusting subject tokens from: %s", ", ".join(trust.issuers))
    return Components(
        settings=settings,
        http_client=http_client,
        signer=signer,
        trust=trust,
        validator=validator,
        issuer=TokenIssuer(signer, trust, validator),
        authorizer=authorizer or default_authorizer(),
    )
