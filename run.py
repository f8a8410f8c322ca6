"""Entry point for the Countdown API server.

Starts the FastAPI application with Uvicorn.  The bind address and
port come from the ``ADDR`` and ``PORT`` environment variables
(defaults ``0.0.0.0`` and ``3000``); the counters file location comes
from ``COUNTERS_FILE``.  If the counters file is corrupt the
application refuses to start and the process exits with status 3.

Usage:
    python run.py
"""
import asyncio
import logging
import sys

from uvicorn import Config, Server

from countdown_api.app.core.config import settings
from countdown_api.app.main import app

STARTUP_FAILURE = 3


async def main() -> int:
    """Serve until shutdown; return a process exit status."""
    logging.getLogger(__name__).info("listening on http://%s:%s", settings.host, settings.port)
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_config=None,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()
    return 0 if server.started else STARTUP_FAILURE


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
