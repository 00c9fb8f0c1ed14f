"""
Health check endpoint shared by every portal app.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from healthle.core.probes import check_database

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/api/health",
    summary="Health check",
    description="Checks that the service is running and the database answers",
)
async def health_check():
    """
    Health probe.

    Returns:
        200 ``{"status": "healthy"}``, or 500 ``{"status": "unhealthy",
        "error": ...}`` when the database probe fails
    """
    if not await check_database():
        logger.error("Health check failed: database unreachable")
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "error": "データベースに接続できません"},
        )
    return {"status": "healthy"}
