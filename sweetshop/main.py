"""
Sweet Shop Service FastAPI Application.

This module builds the FastAPI application for the sweet shop: authentication,
inventory CRUD and search, purchases, admin restocks and purchase history,
persisted in a relational database through SQLAlchemy.

The service includes:
- Account endpoints under ``{API_PREFIX}/auth``
- Inventory endpoints under ``{API_PREFIX}/sweets``
- A health check endpoint for service monitoring and orchestration

Every error is rendered as ``{"status": "error", "message": ...}``.

Attributes:
    app (FastAPI): Application instance bound to ``DATABASE_URL``.
"""
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config, errors, models, schemas
from .database import create_db_engine, create_session_factory
from .routers import auth as auth_router
from .routers import sweets as sweets_router

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=schemas.ErrorResponse(message=message).model_dump(),
        headers=headers,
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = [str(part) for part in first.get("loc", ())[1:]]
    message = first.get("msg", "Invalid request")
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as the uniform error body."""

    @app.exception_handler(errors.SweetShopError)
    async def sweetshop_error_handler(request: Request, exc: errors.SweetShopError):
        return _error_response(exc.status_code, exc.message, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"Database error on {request.method} {request.url.path}")
        return _error_response(500, "Internal server error")


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """
    Build the application.

    Args:
        database_url: SQLAlchemy URL of the store; defaults to DATABASE_URL

    Returns:
        FastAPI: configured application, with its engine and session factory on ``app.state``
    """
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_db_engine(database_url or config.DATABASE_URL)
    # Create database tables
    models.Base.metadata.create_all(bind=engine)

    app = FastAPI(title="sweetshop-service")
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router.router, prefix=config.API_PREFIX)
    app.include_router(sweets_router.router, prefix=config.API_PREFIX)

    @app.get("/healthz", response_model=dict)
    def health():
        """
        Health check endpoint for the sweet shop service.

        Returns:
            dict: {"status": "healthy"} while the service is operational.
        """
        return {"status": "healthy"}

    return app


app = create_app()
