from typing import Optional
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime
import logging

# Load environment variables as early as possible
load_dotenv()

from .application.ports.storage import Storage
from .application.services.booking_policy import BookingPolicy
from .config import Settings, settings as default_settings
from .exceptions import (
    SchedulingError,
    http_exception_handler,
    scheduling_exception_handler,
    validation_exception_handler,
)
from .infrastructure.notifications.log_notifier import LoggingNotifier, NullNotifier
from .middleware import SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware
from .routers import availability_router, appointments_router, patients_router, schedules_router
from .storage import build_storage

# Configure logging
logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
    format=default_settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {app.state.settings.APP_NAME}...")
    app.state.storage_ok = True
    app.state.storage_error = None
    try:
        app.state.storage.init()
        logger.info(f"Storage '{app.state.storage.name}' initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.storage_ok = False
        app.state.storage_error = str(e)
        logger.exception("Storage initialization failed")
    yield
    # Shutdown
    logger.info(f"Shutting down {app.state.settings.APP_NAME}...")


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
    )

    app.state.settings = settings
    app.state.storage = storage or build_storage(settings)
    app.state.policy = BookingPolicy.from_settings(settings)
    app.state.notifier = LoggingNotifier() if settings.NOTIFICATIONS_ENABLED else NullNotifier()

    # Exception handlers
    app.add_exception_handler(SchedulingError, scheduling_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Middleware
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.allowed_methods_list,
        allow_headers=settings.allowed_headers_list,
    )

    app.include_router(availability_router.router)
    app.include_router(appointments_router.router)
    app.include_router(patients_router.router)
    app.include_router(schedules_router.router)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {
            "status": "healthy" if getattr(app.state, "storage_ok", True) else "degraded",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "storage": app.state.storage.name,
            "storage_error": getattr(app.state, "storage_error", None),
            "timestamp": datetime.utcnow().isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=default_settings.HOST, port=default_settings.PORT, reload=default_settings.DEBUG)
