"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shortlink.errors import (
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
    TokenSpaceExhaustedError,
)
from shortlink.common.logging_config import get_logger
from shortlink.service import LinkService
from .api import api_router
from .web import web_router
from .middleware.logging import LoggingMiddleware


def _error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


def _register_exception_handlers(app: FastAPI) -> None:
    """Translate service errors into HTTP responses."""

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, "Not found", str(exc))

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Store unavailable", str(exc))

    @app.exception_handler(TokenSpaceExhaustedError)
    async def exhausted_handler(request: Request, exc: TokenSpaceExhaustedError):
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not allocate a short token", str(exc)
        )


def create_app(
    service_instance: Optional[LinkService],
    config,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service_instance: LinkService; may be None when a lifespan sets it later
        config: Configuration instance
        logger: Application logger, used by the lifespan

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Short Link Service",
        description="URL shortening service with cached resolution",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.service = service_instance
    app.state.config = config
    app.state.logger = logger or get_logger()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware, logger=get_logger("web"))

    _register_exception_handlers(app)

    app.include_router(api_router, prefix="/api", tags=["API"])
    app.include_router(web_router, tags=["Web"])

    return app
