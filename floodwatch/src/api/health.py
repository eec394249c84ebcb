"""
Health check endpoint for the monitor API.

GET /health returns {"status": "ok"} with HTTP 200. It reports process
liveness only; device reachability is in the health file.

CHANGELOG:
- 2026-10-17: Initial creation (FW-013)
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "ok"}`` indicating the service is alive.
    """
    return {"status": "ok"}
