"""
POST/GET /api/log: append to and read the current day's telemetry log.

POST accepts any JSON object and appends it as one record. GET returns the
most recent records of today's partition (LOG_TAIL_SIZE, default 10) as a
JSON array, newest last. Store failures answer 500 with ``{"error": ...}``
and leave the monitor's in-memory state untouched.

CHANGELOG:
- 2026-10-17: Reject NaN and Infinity bodies with 400 (FW-014)
- 2026-10-17: Initial creation (FW-013)

TODO:
- None
"""

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from floodwatch.src.api.deps import MonitorDep, SettingsDep
from floodwatch.src.errors import LogStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["log"])


@router.post("/log")
async def append_log(request: Request, monitor: MonitorDep) -> JSONResponse:
    """Append the request body as one log record.

    Returns:
        ``{"status": "ok"}`` on success; 400 if the body is not a JSON
        object or holds NaN or Infinity; 500 if the log partition cannot
        be written.
    """
    try:
        record: Any = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Body is not valid JSON"})

    if not isinstance(record, dict):
        return JSONResponse(
            status_code=400, content={"error": "Body must be a JSON object"}
        )

    try:
        await monitor.log_store.append_async(record)
    except ValueError:
        return JSONResponse(
            status_code=400, content={"error": "Body must not contain NaN or Infinity"}
        )
    except LogStoreError as exc:
        logger.error("Log append via API failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return JSONResponse(content={"status": "ok"})


@router.get("/log")
async def read_log(monitor: MonitorDep, settings: SettingsDep) -> JSONResponse:
    """Return today's most recent records, newest last.

    Returns:
        JSON array (empty when nothing has been logged today); 500 if the
        partition exists but cannot be read.
    """
    try:
        records = await monitor.log_store.tail_async(settings.log_tail_size)
    except LogStoreError as exc:
        logger.error("Log read via API failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    return JSONResponse(content=records)
