"""Health check endpoints for the DNA ERP service.

Provides Kubernetes-compatible health probes:
- /health: Basic health check
- /health/live: Liveness probe (is the app running?)
- /health/ready: Readiness probe (is the app ready to serve traffic?)

Checks:
- Database connectivity
- DNA rule document
- Disk space
- Memory usage
"""

import psutil
from typing import Dict, Any
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from dna.config import DNAConfigCache, validate_thresholds
from erp import __version__
from erp.api.deps import get_db, get_dna_cache

router = APIRouter(tags=["health"])

# Thresholds
DISK_WARNING_PERCENT = 85
DISK_CRITICAL_PERCENT = 95
MEMORY_WARNING_PERCENT = 85
MEMORY_CRITICAL_PERCENT = 95


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity."""
    try:
        db.execute(text("SELECT 1")).fetchone()
        return {
            "status": "healthy",
            "dialect": db.get_bind().dialect.name,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }


def check_dna(cache: DNAConfigCache) -> Dict[str, Any]:
    """Check that a DNA configuration is loaded and well formed."""
    try:
        config = cache.get()
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }

    problems = validate_thresholds(config.approval_thresholds)
    return {
        "status": "warning" if problems else "healthy",
        "version": config.version,
        "source": config.source,
        "thresholds": len(config.approval_thresholds),
        "problems": problems,
    }


def _usage_status(percent: float, warning: float, critical: float) -> str:
    if percent >= critical:
        return "critical"
    if percent >= warning:
        return "warning"
    return "healthy"


def _gb(value: int) -> float:
    return round(value / (1024**3), 2)


def check_disk(path: str = "/") -> Dict[str, Any]:
    """Check free space on the volume holding ``path``."""
    try:
        disk = psutil.disk_usage(path)
    except OSError as e:
        return {"status": "unknown", "error": str(e)}

    return {
        "status": _usage_status(disk.percent, DISK_WARNING_PERCENT, DISK_CRITICAL_PERCENT),
        "total_gb": _gb(disk.total),
        "free_gb": _gb(disk.free),
        "percent_used": disk.percent,
    }


def check_memory() -> Dict[str, Any]:
    """Check system memory usage."""
    memory = psutil.virtual_memory()
    return {
        "status": _usage_status(memory.percent, MEMORY_WARNING_PERCENT, MEMORY_CRITICAL_PERCENT),
        "total_gb": _gb(memory.total),
        "available_gb": _gb(memory.available),
        "percent_used": memory.percent,
    }


@router.get("/health")
async def health_check():
    """Basic health check; 200 while the application is running."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": _timestamp(),
    }


@router.get("/health/live")
async def liveness_probe():
    """
    Kubernetes liveness probe.

    Does not touch the database or the DNA file.
    """
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "alive",
            "timestamp": _timestamp(),
        },
    )


@router.get("/health/ready")
async def readiness_probe(
    db: Session = Depends(get_db),
    cache: DNAConfigCache = Depends(get_dna_cache),
):
    """
    Kubernetes readiness probe.

    Returns 503 when the database is unreachable or no DNA configuration can
    be loaded. DNA layout problems, disk and memory pressure degrade the
    status without failing the probe unless critical.
    """
    checks = {
        "database": check_database(db),
        "dna": check_dna(cache),
        "disk": check_disk(),
        "memory": check_memory(),
    }

    failed = [
        name for name, check in checks.items()
        if check["status"] in ("unhealthy", "critical")
    ]
    if failed:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": checks,
                "failed": failed,
                "timestamp": _timestamp(),
            },
        )

    degraded = any(check["status"] == "warning" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "degraded" if degraded else "ready",
            "checks": checks,
            "timestamp": _timestamp(),
        },
    )
