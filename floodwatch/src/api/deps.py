"""
FastAPI dependency injection providers.

The monitor and settings are created in the application lifespan and stored
on ``app.state``; these providers hand them to route handlers.

CHANGELOG:
- 2026-10-17: Initial creation (FW-013)
"""

from typing import Annotated

from fastapi import Depends, Request

from floodwatch.src.config import MonitorSettings
from floodwatch.src.service import TelemetryMonitor


def get_monitor(request: Request) -> TelemetryMonitor:
    """Return the TelemetryMonitor owned by the running app."""
    return request.app.state.monitor


def get_settings(request: Request) -> MonitorSettings:
    """Return the MonitorSettings the app was started with."""
    return request.app.state.settings


# Usage in route handlers:
#   async def my_route(monitor: MonitorDep):
#       snapshot = monitor.status
MonitorDep = Annotated[TelemetryMonitor, Depends(get_monitor)]
SettingsDep = Annotated[MonitorSettings, Depends(get_settings)]
