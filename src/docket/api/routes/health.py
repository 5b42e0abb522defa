"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "docket-api", "version": "0.1.0"}


@router.get("/health/live")
async def liveness():
    """Liveness check: 200 whenever the process is serving."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness check: checks database connectivity."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        session_factory = request.app.state.db_session_factory
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Readiness database check failed: %s", exc)
        checks["database"] = f"error: {exc}"
        overall_ok = False

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "checks": checks,
        },
    )
