"""
Health check and system monitoring endpoints.
"""
import os
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from db_config import get_async_db
from core.config import settings
from core.storage import LocalObjectStorage, get_storage
from models.models import User, Document

router = APIRouter(prefix="/health", tags=["Health"])
logger = structlog.get_logger("health")


class HealthChecker:
    """Service for performing the individual health checks."""

    def __init__(self, db: Optional[AsyncSession] = None, storage: Optional[LocalObjectStorage] = None):
        self.db = db
        self.storage = storage

    async def check_database(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            await self.db.execute(text("SELECT 1"))
            user_count = (await self.db.execute(select(func.count(User.id)))).scalar_one()
            document_count = (await self.db.execute(select(func.count(Document.id)))).scalar_one()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
                "user_count": user_count,
                "document_count": document_count,
            }
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    def check_integrations(self) -> Dict[str, Any]:
        """Configuration state of external services. No network calls are made."""
        def configured(value) -> str:
            return "configured" if value else "not_configured"

        return {
            "openai": configured(settings.openai_api_key),
            "groq": configured(settings.groq_api_key),
            "gemini": configured(settings.gemini_api_key),
            "stripe": configured(settings.stripe_secret_key),
            "smtp": configured(settings.smtp_host),
        }

    def check_storage(self) -> Dict[str, Any]:
        root = str(self.storage.root)
        writable = os.path.isdir(root) and os.access(root, os.W_OK)
        return {"status": "healthy" if writable else "unhealthy", "root": root}

    def check_system_resources(self) -> Dict[str, Any]:
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage("/")
            return {
                "status": "healthy",
                "cpu_percent": psutil.cpu_percent(interval=0.1),
                "memory": {
                    "total_gb": round(memory.total / (1024**3), 2),
                    "available_gb": round(memory.available / (1024**3), 2),
                    "percent_used": memory.percent
                },
                "disk": {
                    "total_gb": round(disk.total / (1024**3), 2),
                    "free_gb": round(disk.free / (1024**3), 2),
                    "percent_used": round((disk.used / disk.total) * 100, 2)
                }
            }
        except (psutil.Error, OSError) as e:
            logger.error("System resource check failed", error=str(e))
            return {"status": "error", "error": str(e)}


@router.get("/detailed", summary="Detailed health check")
async def detailed_health_check(
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Database, storage, integrations and system resources in one report."""
    checker = HealthChecker(db, storage)
    checks = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.app_name,
        "version": settings.app_version,
        "database": await checker.check_database(),
        "storage": checker.check_storage(),
        "integrations": checker.check_integrations(),
        "system": checker.check_system_resources(),
    }

    overall_status = "healthy"
    if checks["database"]["status"] != "healthy":
        overall_status = "unhealthy"
    elif checks["storage"]["status"] != "healthy":
        overall_status = "degraded"
    elif not any(checks["integrations"][p] == "configured" for p in ("openai", "groq", "gemini")):
        overall_status = "degraded"

    system = checks["system"]
    if overall_status == "healthy" and system["status"] == "healthy":
        if (system.get("cpu_percent", 0) > 90 or
                system.get("memory", {}).get("percent_used", 0) > 90 or
                system.get("disk", {}).get("percent_used", 0) > 90):
            overall_status = "degraded"

    checks["overall_status"] = overall_status
    logger.info("Health check performed", status=overall_status)

    return JSONResponse(status_code=503 if overall_status == "unhealthy" else 200, content=checks)


@router.get("/database", summary="Database health check")
async def database_health_check(db: AsyncSession = Depends(get_async_db)):
    result = await HealthChecker(db).check_database()
    return JSONResponse(status_code=200 if result["status"] == "healthy" else 503, content=result)


@router.get("/system", summary="System resources check")
async def system_health_check():
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "system": HealthChecker().check_system_resources()
    }


@router.get("/readiness", summary="Readiness check")
async def readiness_check(db: AsyncSession = Depends(get_async_db)):
    """Returns 200 once the database answers."""
    db_check = await HealthChecker(db).check_database()
    if db_check["status"] != "healthy":
        return JSONResponse(status_code=503, content={"status": "not_ready"})
    return {"status": "ready"}


@router.get("/liveness", summary="Liveness check")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
