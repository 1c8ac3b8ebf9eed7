"""
Civic Escalation Service - FastAPI Application Entry Point

Calls the on-duty admin about citizen-reported issues nobody has looked at.

DESIGN PRINCIPLES:
- One call per overdue window, never a call storm
- Admins stay in control: mark viewed to stop, reset to re-arm
- Works without Twilio credentials (demo calls) and without Firestore (USE_MOCK_DB)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.settings import settings
from app.routes import admin, health
from app.services.escalation import build_escalation_runtime

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Escalation calls and admin controls for citizen-reported civic issues",
    debug=settings.DEBUG
)


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(
        f"🔥 Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Internal server error: {str(exc)}"}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Catch Pydantic validation errors and log them."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Wire the escalation core and start the scheduler.
    A store that cannot be reached at startup is logged, not fatal:
    admin routes answer 503 until the service is restarted.
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        runtime = build_escalation_runtime(settings)
    except Exception as e:
        logger.error(f"Warning: escalation initialization failed: {e}")
        return

    app.state.escalation = runtime
    await runtime.start()


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop scheduling new scans; a scan in flight finishes first.
    """
    runtime = getattr(app.state, "escalation", None)
    if runtime is not None:
        await runtime.stop()
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(admin.router)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "escalation": "/health/escalation"
    }
