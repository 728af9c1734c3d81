"""FastAPI application entrypoint.

Configures logging and CORS, builds the AppContext, includes routers, and
exposes a healthcheck endpoint.
"""

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .deps import Settings, get_settings
from .routers import data as data_router
from .routers import units as units_router
from .state import AppContext
from .utils.env import load_env_file
from . import schemas

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def configure_logging(level_name: str) -> None:
    level = LOG_LEVELS.get(level_name.lower(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level)
    logger.info(f"[STARTUP] Log level: {logging.getLevelName(level)}")


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Defaults to environment/.env settings
        context: Prebuilt AppContext (tests pass one with an in-memory
            database and a fake InfluxDB client)
    """
    if settings is None:
        load_env_file()
        settings = get_settings()

    configure_logging(settings.LOG_LEVEL)
    if settings.TESTING:
        logger.warning("[STARTUP] TESTING mode")

    if context is None:
        context = AppContext.from_settings(settings)

    app = FastAPI(
        title="NEMweb Data API",
        description="""
        Electricity market data for the NEM: regional demand, rooftop solar,
        generation per unit and generation grouped by region, fuel or technology.

        Filters are passed as query parameters, e.g. `region_id.eq=NSW1`,
        `range.start=-1d`, `aggregate.every=1h&aggregate.fn=mean`.
        """,
        version="1.0.0",
    )
    app.state.context = context

    logger.info(f"[CORS] Allowed origins: {settings.cors_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS", "POST", "DELETE", "PUT", "PATCH"],
        allow_headers=["Content-type", "Origin", "Accept", "*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        client = request.client.host if request.client else "-"
        logger.debug(
            f"[HTTP] {client} {request.method} {request.url.path}?{request.url.query} "
            f"-> {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response

    app.include_router(units_router.router)
    app.include_router(data_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.context.close()

    return app
