"""Liveness and readiness endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

import database

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """Database ping plus pool stats; 503 when the database is unreachable."""
    bind = getattr(request.app.state, "engine", None) or database.engine
    db = await database.check_db_health(bind)
    healthy = db["status"] == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "checks": {"database": db},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
