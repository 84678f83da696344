"""
FastAPI application entry point for the Menufic backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from menufic.auth_routes import router as auth_router
from menufic.config import get_settings
from menufic.errors import AuthError, ImageStoreError, InvalidImageError, NotFoundError
from menufic.routes import router

logger = logging.getLogger(__name__)


def _error_handler(status_code: int):
    def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Menufic Backend (FastAPI)", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(auth_router, prefix=settings.api_prefix)

    app.add_exception_handler(NotFoundError, _error_handler(404))
    app.add_exception_handler(InvalidImageError, _error_handler(400))
    app.add_exception_handler(AuthError, _error_handler(401))
    app.add_exception_handler(ImageStoreError, _error_handler(502))
    return app


app = create_app()
