"""
FastAPI application entry point for treatshelf.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from treatshelf.config import Settings, get_settings
from treatshelf.db import TreatDatabase
from treatshelf.dependencies import build_image_storage, build_treat_database
from treatshelf.errors import (
    InvalidArgumentError,
    NotFoundError,
    StorageError,
    TreatDatabaseError,
)
from treatshelf.reporting import report_error
from treatshelf.routes import router
from treatshelf.storage import ImageStorage
from treatshelf.web import router as web_router


def _status_for(exc: Exception, *, is_api: bool) -> int:
    if isinstance(exc, InvalidArgumentError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    # Backend and storage failures.
    return 503 if is_api else 500


def is_api_path(path: str, api_prefix: str) -> bool:
    prefix = api_prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def _install_error_handlers(app: FastAPI, api_prefix: str) -> None:
    async def handle_error(request: Request, exc: Exception):
        is_api = is_api_path(request.url.path, api_prefix)
        status_code = _status_for(exc, is_api=is_api)
        message = str(exc)
        report_error(request, exc, status_code=status_code, message=message)
        if is_api:
            return JSONResponse(status_code=status_code, content={"detail": message})
        return PlainTextResponse(message, status_code=status_code)

    app.add_exception_handler(TreatDatabaseError, handle_error)
    app.add_exception_handler(StorageError, handle_error)


def create_app(
    settings: Optional[Settings] = None,
    *,
    db: Optional[TreatDatabase] = None,
    storage: Optional[ImageStorage] = None,
) -> FastAPI:
    """
    Build the application. Backends not passed in are created from settings.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.db.close()

    app = FastAPI(title="Treatshelf", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db if db is not None else build_treat_database(settings)
    app.state.storage = storage if storage is not None else build_image_storage(settings)

    _install_error_handlers(app, settings.api_prefix)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(web_router)
    return app
