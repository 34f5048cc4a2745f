"""Resolve and cache verification key sets for trusted issuers."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import jwt

from tokenex.core.errors import KeyResolutionFailed, UnknownIssuer
from tokenex.crypto.signer import TokenSigner
from tokenex.trust.types import TrustedIssuer

logger = logging.getLogger(__name__)


class KeySetSource(Protocol):
    """Provides the verification keys of exactly one issuer."""

    async def get_key_set(self, *, force_refresh: bool = False) -> jwt.PyJWKSet: ...


class LocalKeySetSource:
    """This server's own published keys (self-trust)."""

    def __init__(self, signer: TokenSigner) -> None:
        self._signer = signer

    async def get_key_set(self, *, force_refresh: bool = False) -> jwt.PyJWKSet:
        return jwt.PyJWKSet.from_dict(self._signer.public_jwks().model_dump())


class _DiscoveryError(Exception):
    """Issuer metadata was unusable."""


_FETCH_ERRORS = (
    httpx.HTTPError,
    TimeoutError,
    ValueError,
    jwt.PyJWKError,
    jwt.PyJWKSetError,
    _DiscoveryError,
)


@dataclass
class _CachedKeySet:
    key_set: jwt.PyJWKSet
    fetched_at: float


class RemoteKeySetSource:
    """Fetches a trusted issuer's JWKS from its configured location.

    The cache is refreshed under a per-issuer lock so concurrent callers
    share one fetch attempt, successful or not. A failed refresh falls back
    to the last good key set and is not retried for
    ``min_refresh_interval_seconds``; only an empty cache turns a fetch
    failure into ``KeyResolutionFailed``.
    """

    def __init__(
        self,
        trusted: TrustedIssuer,
        http_client: httpx.AsyncClient,
        *,
        cache_ttl_seconds: float,
        fetch_timeout_seconds: float,
        min_refresh_interval_seconds: float,
    ) -> None:
        self._trusted = trusted
        self._http = http_client
        self._ttl = cache_ttl_seconds
        self._timeout = fetch_timeout_seconds
        self._min_refresh = min_refresh_interval_seconds
        self._jwks_uri = trusted.jwks_uri
        self._cache: _CachedKeySet | None = None
        self._attempted_at = float("-inf")
        self._failed_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def issuer(self) -> str:
        return self._trusted.issuer

    def _is_fresh(self, cached: _CachedKeySet) -> bool:
        return time.monotonic() - cached.fetched_at < self._ttl

    def _recently_fetched(self, cached: _CachedKeySet) -> bool:
        return time.monotonic() - cached.fetched_at < self._min_refresh

    def _backing_off(self) -> bool:
        if self._failed_at is None:
            return False
        return time.monotonic() - self._failed_at < self._min_refresh

    async def get_key_set(self, *, force_refresh: bool = False) -> jwt.PyJWKSet:
        cached = self._cache
        if cached is not None and not force_refresh and self._is_fresh(cached):
            return cached.key_set

        waiting_since = time.monotonic()
        async with self._lock:
            cached = self._cache
            if self._attempted_at > waiting_since:
                # A fetch finished while this caller waited for the lock.
                if cached is None:
                    raise KeyResolutionFailed()
                return cached.key_set
            if cached is not None:
                if self._backing_off():
                    return cached.key_set
                if force_refresh and self._recently_fetched(cached):
                    return cached.key_set
                if not force_refresh and self._is_fresh(cached):
                    return cached.key_set
            try:
                async with asyncio.timeout(self._timeout):
                    key_set = await self._fetch()
            except _FETCH_ERRORS as exc:
                self._failed_at = self._attempted_at = time.monotonic()
                if cached is not None:
                    logger.warning(
                        "JWKS refresh for %s failed, serving cached keys: %r",
                        self.issuer,
                        exc,
                    )
                    return cached.key_set
                logger.error("JWKS fetch for %s failed: %r", self.issuer, exc)
                raise KeyResolutionFailed() from exc

            self._attempted_at = time.monotonic()
            self._failed_at = None
            self._cache = _CachedKeySet(key_set=key_set, fetched_at=self._attempted_at)
            logger.info(
                "Fetched JWKS for %s (%d keys)", self.issuer, len(key_set.keys)
            )
            return key_set

    async def _fetch(self) -> jwt.PyJWKSet:
        if self._jwks_uri is None:
            self._jwks_uri = await self._discover_jwks_uri()
        data = await self._get_json(self._jwks_uri)
        return jwt.PyJWKSet.from_dict(data)

    async def _discover_jwks_uri(self) -> str:
        url = self._trusted.well_known_url or ""
        metadata = await self._get_json(url)
        if metadata.get("issuer") != self.issuer:
            raise _DiscoveryError(
                f"metadata at {url} names issuer {metadata.get('issuer')!r}"
            )
        jwks_uri = metadata.get("jwks_uri")
        if not isinstance(jwks_uri, str) or not jwks_uri:
            raise _DiscoveryError(f"metadata at {url} has no jwks_uri")
        return jwks_uri

    async def _get_json(self, url: str) -> dict[str, Any]:
        logger.debug("Fetching %s", url)
        response = await self._http.get(
            url, timeout=self._timeout, headers={"Accept": "application/json"}
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object from {url}")
        return data


class TrustRegistry:
    """Maps issuer identifiers to key set sources.

    Only issuers configured at startup are resolvable; there is no way to
    add a discovery location at request time.
    """

    def __init__(
        self,
        own_issuer: str,
        own_source: KeySetSource,
        remote_sources: dict[str, KeySetSource],
    ) -> None:
        self._own_issuer = own_issuer
        self._sources: dict[str, KeySetSource] = {**remote_sources, own_issuer: own_source}

    @property
    def issuers(self) -> list[str]:
        return list(self._sources)

    def source_for(self, issuer: str | None) -> KeySetSource:
        source = self._sources.get(issuer) if issuer is not None else None
        if source is None:
            raise UnknownIssuer(f"cannot validate token from issuer={issuer}")
        return source

    async def resolve(
        self, issuer: str | None, *, force_refresh: bool = False
    ) -> jwt.PyJWKSet:
        return await self.source_for(issuer).get_key_set(force_refresh=force_refresh)


def build_trust_registry(
    own_issuer: str,
    signer: TokenSigner,
    trusted_issuers: list[TrustedIssuer],
    http_client: httpx.AsyncClient,
    *,
    cache_ttl_seconds: float,
    fetch_timeout_seconds: float,
    min_refresh_interval_seconds: float,
) -> TrustRegistry:
    """One remote source per configured issuer plus self-trust."""
    remote: dict[str, KeySetSource] = {
        trusted.issuer: RemoteKeySetSource(
            trusted,
            http_client,
            cache_ttl_seconds=cache_ttl_seconds,
            fetch_timeout_seconds=fetch_timeout_seconds,
            min_refresh_interval_seconds=min_refresh_interval_seconds,
        )
        for trusted in trusted_issuers
    }
    return TrustRegistry(own_issuer, LocalKeySetSource(signer), remote)
