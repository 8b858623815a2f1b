"""FastAPI application entry point for the ProCryptomancer API."""

import logging
import sys

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, settings
from errors import register_error_handlers
from services.cache import FreshnessCache
from services.contest import SubmissionStore
from services.users import UserStore

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build an app with its own stores and price cache.

    ``http_transport`` replaces the network transport for upstream price
    calls (tests pass an ``httpx.MockTransport``).
    """
    app_settings = app_settings or settings
    app = FastAPI(title="ProCryptomancer API", version="1.0.0")

    app.state.settings = app_settings
    app.state.http_transport = http_transport
    app.state.users = UserStore()
    app.state.submissions = SubmissionStore()
    app.state.price_cache = FreshnessCache(
        ttl_seconds=app_settings.price_cache_ttl_seconds,
        timeout_seconds=app_settings.upstream_timeout_seconds,
        serve_stale_on_error=app_settings.serve_stale_on_error,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if app_settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.auth import router as auth_router
    from routes.contest import router as contest_router
    from routes.health import router as health_router
    from routes.market import router as market_router

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(contest_router)
    app.include_router(market_router)

    @app.on_event("startup")
    async def _validate_config() -> None:
        missing = app_settings.validate()
        if missing:
            logger.warning("Missing env vars (admin routes disabled): %s", ", ".join(missing))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
