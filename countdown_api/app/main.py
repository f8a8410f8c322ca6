"""
Main entrypoint for the Countdown API.

This module assembles the FastAPI application, sets up logging and
includes the routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time as
``app``.  Run it with uvicorn, e.g.::

    uvicorn countdown_api.app.main:app --reload

The counter store is created and loaded from disk in the lifespan
handler, so a corrupt counters file stops startup before any request is
served.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.endpoints import health
from .api.router import router as api_router
from .core.config import Settings, settings as default_settings
from .core.logging_config import setup_logging
from .services.counter_service import CounterStore

logger = logging.getLogger(__name__)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report undecodable or schema‑violating request bodies as HTTP 400."""
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use.  Defaults to the module‑level settings
        read from the environment.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.  ``app.state.store``
        is available once the lifespan has started.
    """
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.log_file or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = CounterStore(settings.counters_file)
        logger.info("COUNTERS_FILE = %s", store.path)
        store.load(start_empty_on_corrupt=settings.start_empty_on_corrupt)
        app.state.store = store
        try:
            yield
        finally:
            app.state.store = None

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = None

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(api_router, prefix="/api")
    app.include_router(health.router, tags=["health"])

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
