"""
SealNote Backend — Health Check Routes
========================================

What:  GET /health for probes and load balancers, plus GET /api/test, the
       plain-text ping the frontend uses to check the API is reachable.
How:   /health runs SELECT 1 against the database. The service is only
       useful if it can store and fetch notes, so an unreachable database
       makes it unhealthy (HTTP 503).
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from app import __version__
from app.database import check_connection
from app.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    """Report service and database status; 503 when the database is unreachable."""
    db_ok = await check_connection()
    if not db_ok:
        logger.warning("Health check: database unreachable")

    body = HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        version=__version__,
        database="connected" if db_ok else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump())


@router.get("/api/test", response_class=PlainTextResponse, summary="Connectivity ping")
async def ping() -> str:
    return "Hello world!"
