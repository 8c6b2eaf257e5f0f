"""
Fleet Inventory - Main Application Entry Point
Application Factory Pattern with ORJSONResponse as the default response class.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import settings
from src.core.database import close_db, init_db
from src.core.exceptions import (
    FleetInventoryException,
    fleet_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from src.core.logging import RequestContextMiddleware, configure_logging, get_logger

# Configure logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting Fleet Inventory",
        environment=settings.environment,
        debug=settings.debug,
    )

    if settings.run_db_init:
        await init_db()
        logger.info("Database initialized")

    yield

    logger.info("Shutting down Fleet Inventory")
    await close_db()


TAGS_METADATA = [
    {"name": "Tenants", "description": "Organizations owning gateways."},
    {
        "name": "Gateways",
        "description": "Gateway CRUD, device attach/detach and the gateway audit log. "
        "A gateway hosts at most a fixed number of devices.",
    },
    {"name": "Devices", "description": "Peripheral devices, including unattached (orphan) ones."},
    {"name": "Device Types", "description": "Categories of peripheral devices."},
    {"name": "Health", "description": "Liveness check."},
]


def create_application() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=f"{settings.project_name} API",
        summary="Multi-tenant inventory of gateways and peripheral devices",
        version=settings.app_version,
        openapi_url="/openapi.json",
        openapi_tags=TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        default_response_class=ORJSONResponse,
        # debug mode renders tracebacks instead of the 500 handler
        debug=settings.debug and not settings.is_production,
        lifespan=lifespan,
    )

    # Register exception handlers
    app.add_exception_handler(FleetInventoryException, fleet_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_middleware(RequestContextMiddleware)

    cors_origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    logger.info("CORS configured", origins=cors_origins)

    _include_routers(app)

    @app.get("/health", tags=["Health"], response_class=ORJSONResponse)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "fleet-inventory"}

    @app.get("/", tags=["Health"], response_class=ORJSONResponse)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": settings.project_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


def _include_routers(app: FastAPI) -> None:
    """Include the inventory routers under the API prefix."""
    from src.modules.inventory.router import (
        device_types_router,
        devices_router,
        gateways_router,
        tenants_router,
    )

    routers = [
        (tenants_router, "tenants"),
        (gateways_router, "gateways"),
        (devices_router, "devices"),
        (device_types_router, "device-types"),
    ]

    for router, _ in routers:
        app.include_router(router, prefix=settings.api_prefix)

    logger.info(
        "Routers registered",
        modules=[name for _, name in routers],
        api_prefix=settings.api_prefix,
    )


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
