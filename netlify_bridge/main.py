"""
Netlify Bridge - FastAPI Application Entry Point.

This module provides the FastAPI application instance with its
middleware, routes, exception handlers and lifecycle management.
"""

import time
import uuid
from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from netlify_bridge.api.routes import (
    action_router,
    auth_router,
    command_router,
    health_router,
    webhook_router,
)
from netlify_bridge.config.constants import SERVICE_DESCRIPTION, SERVICE_NAME, SERVICE_VERSION
from netlify_bridge.config.settings import Settings, get_settings
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.database.redis_client import RedisConfig, close_redis, initialize_redis
from netlify_bridge.exceptions.base_exceptions import setup_exception_handlers
from netlify_bridge.services.exceptions import ConfigurationError
from netlify_bridge.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL.value, settings.LOG_FORMAT)

    logger.info(
        "Starting Netlify Bridge...",
        version=SERVICE_VERSION,
        environment=settings.ENVIRONMENT.value,
        debug=settings.DEBUG,
        host=settings.HOST,
        port=settings.PORT
    )

    try:
        validate_configuration(settings)
        await initialize_redis(RedisConfig.from_settings(settings))
    except Exception as e:
        logger.error("Netlify Bridge startup failed", error=str(e), error_type=type(e).__name__)
        raise

    app.state.http_client = httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
    )
    app.state.mattermost_client = MattermostClient(
        app.state.http_client,
        settings.MATTERMOST_URL,
        settings.MATTERMOST_BOT_TOKEN
    )

    logger.info("Netlify Bridge startup completed successfully")

    try:
        yield
    finally:
        logger.info("Shutting down Netlify Bridge...")
        await app.state.http_client.aclose()
        await close_redis()
        logger.info("Netlify Bridge shutdown completed successfully")


def validate_configuration(settings: Settings) -> None:
    """
    Refuse to start without the settings every command depends on.

    Raises:
        ConfigurationError: If required settings are missing
    """
    logger.info("Validating configuration...")

    missing = settings.missing_required()
    if missing:
        logger.error("Configuration validation failed", missing=missing)
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}", config_key=missing[0])

    if not settings.SERVICE_URL:
        logger.warning("SERVICE_URL is not set, interactive messages and OAuth are unavailable")

    if not settings.WEBHOOK_SECRET:
        logger.warning("WEBHOOK_SECRET is not set, incoming webhooks are not verified")

    if not settings.MATTERMOST_COMMAND_TOKEN:
        logger.warning("MATTERMOST_COMMAND_TOKEN is not set, slash command requests are not verified")

    logger.info("Configuration validation completed successfully")


def create_app() -> FastAPI:
    """Create and configure FastAPI application instance."""
    settings = get_settings()

    app = FastAPI(
        title="Netlify Bridge",
        description=SERVICE_DESCRIPTION,
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )

    setup_middleware(app, settings)
    setup_exception_handlers(app)
    setup_routes(app)

    return app


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware."""

    if settings.is_production():
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS
        )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next):
        """Add unique request ID to all requests."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to responses."""
        start_time = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(round((time.perf_counter() - start_time) * 1000, 2))
        return response


def setup_routes(app: FastAPI) -> None:
    app.include_router(health_router)
    app.include_router(command_router)
    app.include_router(action_router)
    app.include_router(auth_router)
    app.include_router(webhook_router)


def main() -> None:
    """Main entry point for running the service."""
    settings = get_settings()

    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": settings.LOG_LEVEL.value,
            "handlers": ["default"],
        },
    }

    uvicorn_config = {
        "app": "netlify_bridge.main:app",
        "host": settings.HOST,
        "port": settings.PORT,
        "log_level": settings.LOG_LEVEL.value.lower(),
        "access_log": True,
        "log_config": log_config,
        "server_header": False,
        "proxy_headers": True,
    }

    if settings.is_development():
        uvicorn_config.update({
            "reload": settings.DEBUG,
            "reload_dirs": ["netlify_bridge/"],
        })

    logger.info(
        "Starting Netlify Bridge server",
        service=SERVICE_NAME,
        host=settings.HOST,
        port=settings.PORT,
        environment=settings.ENVIRONMENT.value
    )

    uvicorn.run(**uvicorn_config)


app = create_app()

if __name__ == "__main__":
    main()
