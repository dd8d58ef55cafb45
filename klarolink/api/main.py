"""KlaroLink API - Main FastAPI Application.

This module provides the main FastAPI application for the KlaroLink platform.
It includes:
- CORS middleware configuration
- Exception handlers mapping domain errors onto HTTP responses
- Health check endpoints
- Auth, public page, dashboard, form, product and profile endpoints under /api

Usage:
    # Run with uvicorn
    uvicorn klarolink.api.main:app --reload

    # Or run directly
    python -m klarolink.api.main
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import structlog
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from klarolink import __version__
from klarolink.api.models import ErrorResponse, ValidationErrorDetail, ValidationErrorResponse
from klarolink.api.routes import (
    auth_router,
    dashboard_router,
    forms_router,
    health_router,
    products_router,
    profile_router,
    public_router,
    reviews_router,
)
from klarolink.api.routes.health import set_server_start_time
from klarolink.config.settings import Settings, get_settings
from klarolink.core.exceptions import (
    AIInsightsParseError,
    AIInsightsUnavailableError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    KlaroLinkError,
    NotFoundError,
    ValidationError,
)
from klarolink.core.logging import configure_logging
from klarolink.database import get_database, reset_database
from klarolink.services.ai_insights import reset_insights_generator

logger = structlog.get_logger(__name__)

# API metadata for OpenAPI documentation
API_TITLE = "KlaroLink API"
API_DESCRIPTION = """
## Branded Customer Feedback Pages

KlaroLink lets a business publish a branded feedback page, collect ratings and
comments from customers, and follow the results on a dashboard.

### Getting Started

1. **Register**: `POST /api/auth/register` returns a bearer token and your page slug
2. **Build the form**: `POST /api/forms` with your questions, then `POST /api/forms/publish`
3. **Share the page**: customers load `GET /api/page/{slug}` and submit to `POST /api/feedback/{slug}`
4. **Follow results**: `GET /api/dashboard`, `/api/dashboard/issues`, `/api/insights`, `/api/audience` and `/api/ai-insights`
5. **Product reviews**: customers rate products through `/api/reviews/product/{product_id}`

### Authentication

Dashboard endpoints require `Authorization: Bearer <token>` from register or login.
"""

# Domain exception -> (HTTP status, error type)
ERROR_STATUS_MAP: list[tuple[type[KlaroLinkError], int, str]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST, "validation_error"),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    (AuthorizationError, status.HTTP_403_FORBIDDEN, "forbidden"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (ConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (AIInsightsParseError, status.HTTP_502_BAD_GATEWAY, "ai_insights_parse_error"),
    (AIInsightsUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "ai_insights_unavailable"),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE, "service_unavailable"),
    (DatabaseError, status.HTTP_503_SERVICE_UNAVAILABLE, "database_error"),
]


def status_for_error(exc: KlaroLinkError) -> tuple[int, str]:
    """HTTP status code and error type for a domain exception."""
    for error_type, status_code, error_name in ERROR_STATUS_MAP:
        if isinstance(exc, error_type):
            return status_code, error_name
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_server_error"


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    detail: Optional[str] = None,
) -> JSONResponse:
    response = ErrorResponse(
        error=error,
        message=message,
        detail=detail,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Startup: Configure logging, select the database adapter
    - Shutdown: Drop cached adapter and AI insights generator
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("application_starting", environment=settings.app_env, version=__version__)
    set_server_start_time()

    database = get_database(settings)
    logger.info("application_started", database_backend=database.backend)

    yield

    logger.info("application_stopping")
    reset_insights_generator()
    reset_database()
    logger.info("application_stopped")


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Attach the uniform error body to every failure path."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors with detailed response."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(ValidationErrorDetail(
                field=field,
                message=error["msg"],
                value=error.get("input"),
            ))

        response = ValidationErrorResponse(
            errors=errors,
            timestamp=datetime.now(timezone.utc),
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=response.model_dump(mode="json"),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        response = _error_response(
            request,
            exc.status_code,
            error=f"http_{exc.status_code}",
            message=str(exc.detail),
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(KlaroLinkError)
    async def domain_exception_handler(
        request: Request, exc: KlaroLinkError
    ) -> JSONResponse:
        """Map domain errors onto HTTP status codes."""
        status_code, error = status_for_error(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "request_failed",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return _error_response(
            request,
            status_code,
            error=error,
            message=exc.message,
            detail=str(exc) if settings.debug else None,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="internal_server_error",
            message="An unexpected error occurred",
            detail=str(exc) if settings.debug else None,
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "Health", "description": "System health and status endpoints"},
            {"name": "Auth", "description": "Registration and login for businesses, users and customers"},
            {"name": "Public", "description": "Public feedback page data, analytics pings and submissions"},
            {"name": "Dashboard", "description": "Stats, insights, audience and AI insights"},
            {"name": "Forms", "description": "Feedback form editing and publishing"},
            {"name": "Products", "description": "Products customers can give feedback on"},
            {"name": "Profile", "description": "Business profile, social links and page customisation"},
        ],
    )

    # Configure CORS middleware (from settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    register_exception_handlers(app, settings)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint - points at the API documentation."""
        return {
            "name": API_TITLE,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "api": "/api",
        }

    # Health endpoints at root level
    app.include_router(health_router)

    api_router = APIRouter(prefix="/api")
    api_router.include_router(auth_router)
    api_router.include_router(public_router)
    api_router.include_router(dashboard_router)
    api_router.include_router(forms_router)
    api_router.include_router(products_router)
    api_router.include_router(profile_router)
    api_router.include_router(reviews_router)
    app.include_router(api_router)

    return app


app = create_app()


# =============================================================================
# Development Server
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "klarolink.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
