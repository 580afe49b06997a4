"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hr_payroll import __version__
from hr_payroll.api.routes import catalog_router, health_router, payslips_router, periods_router
from hr_payroll.config import get_settings
from hr_payroll.database import create_schema, dispose_db, init_db
from hr_payroll.errors import PayrollError
from hr_payroll.logging_config import configure_logging
from hr_payroll.services.collaborators import Collaborators, default_collaborators

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    init_db()
    if settings.auto_create_schema:
        await create_schema()
    yield
    await dispose_db()


def create_app(collaborators: Collaborators | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="HR Payroll API",
        description="Payroll period processing",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.collaborators = collaborators or default_collaborators(
        settings.payslip_storage_dir
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map typed payroll errors to the error envelope."""
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(
                {"detail": exc.message, "code": exc.code, "context": exc.context or None}
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({
                "detail": "invalid request payload",
                "code": "invalid_payload",
                "context": {"errors": exc.errors()},
            }),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(catalog_router, prefix="/api/v1")
    app.include_router(periods_router, prefix="/api/v1")
    app.include_router(payslips_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
