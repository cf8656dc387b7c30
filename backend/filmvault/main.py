"""
Filmvault API — FastAPI application entry point.

Routers and the middleware chain are registered here. Each service lives in
filmvault/api/; the request wrappers live in filmvault/middleware/.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import sessionmaker

from filmvault.api import debug, healthcheck, movies, tokens, users
from filmvault.api.errors import error_response
from filmvault.core.background import BackgroundRunner
from filmvault.core.config import Settings, settings
from filmvault.core.metrics import Metrics
from filmvault.core.rate_limit import RateLimiter
from filmvault.db.session import SessionLocal
from filmvault.middleware.authenticate import AuthenticateMiddleware
from filmvault.middleware.cors import CORSMiddleware
from filmvault.middleware.metrics import MetricsMiddleware
from filmvault.middleware.rate_limit import RateLimitMiddleware
from filmvault.middleware.recover import RecoverMiddleware
from filmvault.services.mailer import Mailer

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "the requested resource could not be found"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Start the rate limiter sweep; on shutdown drain background work within
    SHUTDOWN_TIMEOUT_SECONDS and release the connection pool.
    """
    config: Settings = app.state.settings
    sweeper = None
    if app.state.limiter.enabled:
        sweeper = asyncio.create_task(app.state.limiter.run_sweeper())

    logger.info("Starting server (env=%s, version=%s)", config.APP_ENV, config.VERSION)
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper

        logger.info("Completing background tasks")
        drained = await run_in_threadpool(app.state.background.shutdown, config.SHUTDOWN_TIMEOUT_SECONDS)
        if not drained:
            logger.error(
                "Background tasks still running after %.1fs, shutting down anyway",
                config.SHUTDOWN_TIMEOUT_SECONDS,
            )

        engine = app.state.session_factory.kw.get("bind")
        if engine is not None:
            engine.dispose()
        logger.info("Stopped server")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error, routed or raised, in the {"error": ...} envelope."""
    if exc.status_code == 404:
        message = NOT_FOUND_MESSAGE
    elif exc.status_code == 405:
        message = f"the {request.method} method is not supported for this resource"
    else:
        message = exc.detail

    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


def create_app(config: Settings = settings, session_factory: sessionmaker = SessionLocal) -> FastAPI:
    app = FastAPI(
        title="Filmvault API",
        description="Movie catalog with user accounts and permission-gated access.",
        version=config.VERSION,
        docs_url="/docs" if config.ENABLE_DOCS else None,
        redoc_url="/redoc" if config.ENABLE_DOCS else None,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.session_factory = session_factory
    app.state.metrics = Metrics()
    app.state.limiter = RateLimiter(config.LIMITER_RPS, config.LIMITER_BURST, config.LIMITER_ENABLED)
    app.state.background = BackgroundRunner()
    app.state.mailer = Mailer.from_settings(config)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # ── Middleware ────────────────────────────────────────────────────────────
    # Last added runs first, so requests pass through:
    #   Metrics → Recover → CORS → Rate Limit → Authenticate → Router
    # Metrics sits outside Recover so it still counts the 500s Recover produces.
    app.add_middleware(AuthenticateMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.limiter,
        trusted_proxies=config.TRUSTED_PROXIES,
    )
    app.add_middleware(CORSMiddleware, trusted_origins=config.CORS_TRUSTED_ORIGINS)
    app.add_middleware(RecoverMiddleware)
    app.add_middleware(MetricsMiddleware, metrics=app.state.metrics)

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(healthcheck.router, prefix="/v1",        tags=["system"])
    app.include_router(movies.router,      prefix="/v1/movies", tags=["movies"])
    app.include_router(users.router,       prefix="/v1/users",  tags=["users"])
    app.include_router(tokens.router,      prefix="/v1/tokens", tags=["tokens"])
    app.include_router(debug.router,       prefix="/debug",     tags=["system"])

    return app


app = create_app()
