"""
FastAPI application factory for the flood watch monitor.

The lifespan builds the TelemetryMonitor from settings (unless one is
injected), starts the periodic poll/forecast loops as a background task and,
on shutdown, sets the shutdown event and waits for the loops to finish their
current iteration and for any alert SMS still being sent, so no log write or
notification is left half done.

CHANGELOG:
- 2026-10-17: Initial creation (FW-013)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from floodwatch.src.api.health import router as health_router
from floodwatch.src.api.log import router as log_router
from floodwatch.src.api.status import router as status_router
from floodwatch.src.config import MonitorSettings
from floodwatch.src.health import HealthWriter
from floodwatch.src.main import run_loops
from floodwatch.src.service import TelemetryMonitor, build_monitor

logger = logging.getLogger(__name__)


def create_app(
    settings: MonitorSettings | None = None,
    monitor: TelemetryMonitor | None = None,
    *,
    start_loops: bool = True,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Configuration; loaded from the environment when omitted.
        monitor: Pre-built monitor; built from *settings* when omitted.
        start_loops: Run the poll/forecast loops during the app lifespan.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        cfg = settings if settings is not None else MonitorSettings()
        mon = monitor
        if mon is None:
            mon = build_monitor(cfg, health=HealthWriter(cfg.health_path))
        app.state.settings = cfg
        app.state.monitor = mon

        shutdown_event = asyncio.Event()
        loops: asyncio.Task[None] | None = None
        if start_loops:
            loops = asyncio.create_task(
                run_loops(
                    monitor=mon,
                    poll_interval_s=cfg.poll_interval_s,
                    forecast_interval_s=cfg.forecast_interval_s,
                    shutdown_event=shutdown_event,
                )
            )

        logger.info("Flood watch API ready")
        yield
        logger.info("Flood watch API shutting down")

        shutdown_event.set()
        if loops is not None:
            await loops
        await mon.drain_dispatches()

    app = FastAPI(
        title="Flood Watch Monitor",
        description="Water level telemetry, trend, alerts and daily log.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.include_router(health_router)
    app.include_router(log_router)
    app.include_router(status_router)

    return app
