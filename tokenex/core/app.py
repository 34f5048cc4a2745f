"""FastAPI application factory for the tokenex token exchange server."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from tokenex.api.router_registration import router as registration_router
from tokenex.core.components import build_components
from tokenex.core.errors import InternalFailure, OAuth2Error
from tokenex.core.logging_config import CallLoggingMiddleware, configure_logging
from tokenex.core.metrics import ServerMetrics
from tokenex.core.settings import AuthSettings, DatabaseSettings
from tokenex.crypto.signer import run_key_rotation
from tokenex.db.engine import create_schema, dispose_engine
from tokenex.oauth.routes_discovery import router as discovery_router
from tokenex.oauth.routes_health import router as health_router
from tokenex.oauth.routes_token import router as token_router

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5


async def _oauth2_error_handler(request: Request, exc: OAuth2Error) -> JSONResponse:
    headers = {"Cache-Control": "no-store"}
    if exc.retryable:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.description, exc_info=exc)
    request.app.state.metrics.count_error(exc.error)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc)
    failure = InternalFailure()
    request.app.state.metrics.count_error(failure.error)
    return JSONResponse(failure.to_dict(), status_code=failure.status_code)


def create_app(
    settings: AuthSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Signing keys are created here, before the first request. Pass
    ``http_client`` to control how remote issuer keys are fetched.
    """
    settings = settings or AuthSettings()
    configure_logging(settings.log_level)
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(follow_redirects=True)
    components = build_components(settings, client)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if DatabaseSettings().create_schema:
            await create_schema()
        rotation: asyncio.Task[None] | None = None
        if settings.signing_key_rotation_seconds:
            rotation = asyncio.create_task(
                run_key_rotation(components.signer, settings.signing_key_rotation_seconds)
            )
            logger.info(
                "Rotating signing keys every %d s", settings.signing_key_rotation_seconds
            )
        yield
        if rotation is not None:
            rotation.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await rotation
        if owns_client:
            await client.aclose()
        await dispose_engine()

    app = FastAPI(
        title="tokenex token exchange server",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.components = components
    app.state.metrics = ServerMetrics()

    app.add_middleware(CallLoggingMiddleware)
    app.add_exception_handler(OAuth2Error, _oauth2_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(discovery_router)
    app.include_router(token_router)
    app.include_router(registration_router)

    return app
