"""
Read-only monitor state for dashboards.

- GET /api/status: latest StatusSnapshot (metrics, trend, history, alert
  latch, thresholds, flags, log tail).
- GET /api/device: raw payload of the latest device sample.
- GET /api/forecast: latest rainfall forecast and summary.

Status and device answer 503 until the first successful poll cycle. After
that a failed poll leaves the previous snapshot in place, so stale data is
served with its own (unchanged) sample time.

CHANGELOG:
- 2026-10-17: Initial creation (FW-013)

TODO:
- None
"""

from typing import Any

from fastapi import APIRouter, HTTPException

from floodwatch.src.api.deps import MonitorDep
from floodwatch.src.models import ForecastSnapshot, StatusSnapshot

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status", response_model=StatusSnapshot)
async def get_status(monitor: MonitorDep) -> StatusSnapshot:
    """Return the latest published snapshot.

    Raises:
        HTTPException: 503 before the first successful poll cycle.
    """
    snapshot = monitor.status
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No telemetry received yet.")
    return snapshot


@router.get("/device")
async def get_device(monitor: MonitorDep) -> dict[str, Any]:
    """Return the latest device payload exactly as received.

    Raises:
        HTTPException: 503 before the first successful poll cycle.
    """
    sample = monitor.latest_sample
    if sample is None:
        raise HTTPException(status_code=503, detail="No telemetry received yet.")
    return sample.raw


@router.get("/forecast", response_model=ForecastSnapshot)
async def get_forecast(monitor: MonitorDep) -> ForecastSnapshot:
    """Return the latest rainfall forecast."""
    return monitor.forecast
