"""
FastAPI application factory for the contractor marketplace backend.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from contractor_api.config import Settings, get_settings
from contractor_api.credentials import CredentialManager, PasswordHasher
from contractor_api.dependencies import build_record_store
from contractor_api.errors import ApiError, describe_validation_errors
from contractor_api.ratelimit import RateLimitMiddleware, RequestLimiter
from contractor_api.routes import router
from contractor_api.seed import seed_default_services
from contractor_api.sessions import SessionIssuer, parse_duration
from contractor_api.store import RecordStore
from contractor_api.uploads import LocalUploadStore, UploadStore

logger = logging.getLogger(__name__)

VERCEL_ORIGINS = r"https://.*\.vercel\.app"


def _install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ApiError)
    async def api_error(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content={"error": describe_validation_errors(exc.errors())}
        )

    @app.exception_handler(pydantic.ValidationError)
    async def model_validation_error(request: Request, exc: pydantic.ValidationError):
        return JSONResponse(
            status_code=400, content={"error": describe_validation_errors(exc.errors())}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "Something went wrong",
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[RecordStore] = None,
    uploads: Optional[UploadStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = store if store is not None else build_record_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.seed_default_services:
            seed_default_services(app.state.store)
        if settings.bootstrap_admin:
            app.state.credentials.bootstrap_admin(
                settings.admin_username, settings.admin_email, settings.admin_password
            )
        logger.info("Contractor API ready (%s)", settings.environment)
        yield
        app.state.store.close()

    app = FastAPI(
        title="Contractor Marketplace API", version="1.0.0", lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.sessions = SessionIssuer(
        settings.jwt_secret, parse_duration(settings.jwt_expires_in)
    )
    app.state.credentials = CredentialManager(
        store, PasswordHasher(rounds=settings.bcrypt_rounds)
    )
    app.state.uploads = uploads or LocalUploadStore(settings.upload_dir)
    app.state.started_at = time.monotonic()

    _install_error_handlers(app, settings)

    app.add_middleware(
        RateLimitMiddleware,
        limiter=RequestLimiter(
            settings.rate_limit_max_requests, settings.rate_limit_window_ms / 1000
        ),
    )
    # Added last so rate-limited responses still carry CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_origin_regex=VERCEL_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app
