"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan wires the
realtime core in dependency order:

    bus → registry → propagation service → adapter → connection server
    → subscriptions started → ready to accept connections

Everything lives on app.state so routes and tests reach the same objects.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notifyhub import __version__
from notifyhub.api import api_router
from notifyhub.config import settings
from notifyhub.log import configure_logging
from notifyhub.realtime.adapter import ConnectionAdapter
from notifyhub.realtime.propagator import Bus, PropagationService
from notifyhub.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    The gateway is useless without its backplane, so an unreachable Redis
    fails startup instead of degrading.
    """
    logger.info(
        "notifyhub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from notifyhub.realtime.pubsub import close_bus, init_bus

    owns_bus = app.state.bus is None
    if owns_bus:
        app.state.bus = await init_bus()
        logger.info("notifyhub.bus_connected", url=settings.redis_url)

    registry = ConnectionRegistry()
    propagator = PropagationService(registry, app.state.bus)
    adapter = ConnectionAdapter(registry, propagator)
    adapter.create_server()
    await propagator.start()

    app.state.registry = registry
    app.state.propagator = propagator
    app.state.adapter = adapter

    yield

    # Shutdown
    logger.info("notifyhub.shutdown", connections=len(adapter.server))
    await propagator.stop()
    if owns_bus:
        await close_bus()
        app.state.bus = None


def create_app(bus: Optional[Bus] = None) -> FastAPI:
    """Build and return the FastAPI application.

    Pass `bus` to run against an already-connected bus (tests, embedding);
    otherwise the lifespan connects to settings.redis_url.
    """
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="notifyhub",
        description="Real-time notification gateway — WebSocket fan-out over Redis pub/sub",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bus = bus

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from notifyhub.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: notifyhub.main:app)
app = create_app()
