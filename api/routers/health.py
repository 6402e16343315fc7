"""
Health check router.

This router provides health check endpoints for monitoring and load balancers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from supabase import AsyncClient

from api.deps import get_supabase_async_client

logger = logging.getLogger(__name__)

SERVICE_NAME = "classes-api"

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health():
    """
    Simple liveness endpoint.

    Returns:
        dict: Status indicator for health checks
    """
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/ready")
async def health_ready(client: Optional[AsyncClient] = Depends(get_supabase_async_client)):
    """
    Readiness check over downstream dependencies.

    Verifies Supabase connectivity. Returns 503 if any dependency is unavailable.
    """
    checks = {}

    try:
        if client is not None:
            # Lightweight query to verify connectivity
            await client.table("classes").select("id").limit(1).execute()
            checks["supabase"] = "ok"
        else:
            checks["supabase"] = "not_configured"
    except Exception as e:
        logger.warning("Readiness check failed for supabase: %s", e)
        checks["supabase"] = "unavailable"
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": SERVICE_NAME,
                "checks": checks,
            },
        )

    return {"status": "ready", "service": SERVICE_NAME, "checks": checks}
