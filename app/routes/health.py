"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, HTTPException, Request
from app.config.firebase import get_db
from app.core.settings import settings
from app.utils.firestore_helpers import utcnow


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat()
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check.
    Attempts to connect to Firestore and perform a simple operation.
    """
    if settings.USE_MOCK_DB:
        return {
            "status": "healthy",
            "database": "in-memory",
            "connected": True,
            "timestamp": utcnow().isoformat()
        }

    try:
        db = get_db()
        collections = list(db.collections())

        return {
            "status": "healthy",
            "database": "firestore",
            "connected": True,
            "collections_count": len(collections),
            "timestamp": utcnow().isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )


@router.get("/escalation")
async def escalation_health(request: Request):
    """
    Escalation scheduler status: running flag, notifier mode, last scan.
    """
    runtime = getattr(request.app.state, "escalation", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Escalation service not initialized")

    scheduler = runtime.scheduler
    last_report = scheduler.last_report
    return {
        "status": "healthy" if (scheduler.is_running or not runtime.enabled) else "degraded",
        "enabled": runtime.enabled,
        "running": scheduler.is_running,
        "live_calls": scheduler.notifier.is_live(),
        "interval_seconds": scheduler.interval_seconds,
        "calls_in_flight": scheduler.calls_in_flight,
        "last_cycle": last_report.model_dump(mode="json") if last_report else None,
        "timestamp": utcnow().isoformat()
    }
