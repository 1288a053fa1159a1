"""Liveness and database readiness probes."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.database import check_database

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/db")
async def database_health():
    """Returns 503 while PostgreSQL is unreachable"""
    result = await check_database()
    return JSONResponse(status_code=200 if result["status"] == "healthy" else 503, content=result)
