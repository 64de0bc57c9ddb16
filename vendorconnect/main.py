"""
VendorConnect Task Engine - Main Application Entry Point

FastAPI application with the task API, the Smart Task assistant and the
background sweep scheduler.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from config import settings
from . import __version__
from .database import init_database, close_database, get_database
from .exceptions import VendorConnectError
from .scheduler import get_scheduler_manager
from .services import get_event_bus
from .services.notifications import register_notification_handlers

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info("Starting VendorConnect Task Engine...")

    try:
        if await init_database():
            logger.info("Database initialized")
        else:
            logger.warning("Database not configured or failed to initialize")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    register_notification_handlers(get_event_bus(), get_database())
    logger.info("Notification handlers registered")

    if settings.scheduler_enabled:
        try:
            get_scheduler_manager().start()
        except Exception as e:
            logger.error(f"Scheduler failed to start: {e}")
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")

    logger.info("VendorConnect Task Engine started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down VendorConnect Task Engine...")

    try:
        get_scheduler_manager().stop()
    except Exception as e:
        logger.warning(f"Failed to stop scheduler during shutdown: {e}")

    bus = get_event_bus()
    try:
        await bus.drain()
    except Exception as e:
        logger.warning(f"Failed to drain pending notifications during shutdown: {e}")
    bus.clear()

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="VendorConnect Task Engine",
    description="Multi-tenant task lifecycle API with a natural-language task assistant",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from .web.routes import router as api_router  # noqa: E402
app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": "VendorConnect Task Engine",
        "version": __version__
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception:
        logger.exception("Database health check failed")
        db_health = {"status": "error", "error": "unhealthy"}

    return {
        "status": "healthy" if db_health.get("status") == "healthy" else "degraded",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": db_health,
            "scheduler": get_scheduler_manager().get_job_status(),
        }
    }


def _error_map(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Collapse pydantic error entries into {field: [messages]}."""
    fields: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(loc) or "request"
        fields.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return fields


def _invalid(errors: List[Dict[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "The given data was invalid.",
            "errors": _error_map(errors),
        }
    )


# Error handlers
@app.exception_handler(VendorConnectError)
async def vendorconnect_exception_handler(request: Request, exc: VendorConnectError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _invalid(exc.errors())


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_handler(request: Request, exc: PydanticValidationError):
    return _invalid(exc.errors())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "vendorconnect.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
