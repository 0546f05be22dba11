"""Main application entry point for the Organization Management API."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from hr_org.api.dependencies import api_error_handler
from hr_org.api.hierarchy import hierarchy_router
from hr_org.api.position_assignments import position_assignments_router
from hr_org.api.positions import positions_router
from hr_org.config.settings import get_settings
from hr_org.database.database import DatabaseConfig, dispose_engine, get_engine
from hr_org.utils.errors import APIError, FieldError, ValidationError


# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    logger.info("Starting Organization Management API...")

    config = DatabaseConfig.from_env()
    logger.info(f"Connecting to database at {config.host}:{config.port}/{config.database}")
    get_engine(config)

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Organization Management API...")
    dispose_engine()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "API for position assignments and organizational hierarchy "
            "management with validation, access control and audit logging."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(position_assignments_router)
    app.include_router(positions_router)
    app.include_router(hierarchy_router)

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_handler(
        request: Request,
        exc: Union[RequestValidationError, PydanticValidationError],
    ) -> JSONResponse:
        """Convert Pydantic validation errors to structured response."""
        field_errors = [
            FieldError(
                field=".".join(str(x) for x in error["loc"]),
                message=error["msg"],
                code=error["type"],
            )
            for error in exc.errors()
        ]
        error = ValidationError(message="Request validation failed", field_errors=field_errors)
        return JSONResponse(status_code=error.status_code, content=error.to_response().to_dict())

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error occurred")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": "An unexpected error occurred",
                    "code": "internal_error",
                }
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Check application health."""
        return {"status": "healthy", "version": "1.0.0"}

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hr_org.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
