"""Body composition app backend — application factory and entry point."""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bodycomp.config import Settings, load_settings
from bodycomp.core.credentials import CredentialService
from bodycomp.core.database import close_pool, create_pool, ensure_schema
from bodycomp.core.directory import AccountDirectory
from bodycomp.core.passwords import default_codec
from bodycomp.core.statistics import StatisticsReader
from bodycomp.errors import AppError, InternalError, TransientStorageError
from bodycomp.middleware import BearerAuthMiddleware, RequestIdFilter, RequestIdMiddleware
from bodycomp.routes import auth, chat, health, users
from bodycomp.services.chat import ChatClient

logger = logging.getLogger("bodycomp.app")

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  [%(request_id)s] %(name)s — %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stdout)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    for noisy in ("httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, TransientStorageError):
        headers = {"Retry-After": "1"}
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %r", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse({"message": exc.message}, status_code=exc.status_code, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    kinds = {e.get("type") for e in exc.errors()}
    if kinds & {"missing", "string_too_short"}:
        message = "Please fill in all fields."
    else:
        message = "Invalid request."
    return JSONResponse({"message": message}, status_code=400)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Server error."}, status_code=500)


def create_app(
    settings: Settings | None = None,
    *,
    directory=None,
    statistics=None,
    chat_client: ChatClient | None = None,
) -> FastAPI:
    """Build the app. Storage collaborators may be injected; otherwise a pool is opened at startup."""
    settings = settings or load_settings()
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is not set")
    configure_logging(settings.log_level)

    codec = default_codec(settings.pbkdf2_iterations)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool = None
        if app.state.directory is None or app.state.statistics is None:
            pool = await create_pool(settings)
            await ensure_schema(pool, settings.db_timeout_seconds)
            if app.state.directory is None:
                app.state.directory = AccountDirectory(pool, settings.db_timeout_seconds)
            if app.state.statistics is None:
                app.state.statistics = StatisticsReader(pool, settings.db_timeout_seconds)

        app.state.credentials = CredentialService(
            app.state.directory,
            codec,
            settings.jwt_secret,
            timedelta(hours=settings.jwt_expiry_hours),
        )
        logger.info("Server ready (password schemes: %s)", ", ".join(codec.schemes))
        try:
            yield
        finally:
            if pool is not None:
                await close_pool(pool)

    app = FastAPI(
        title="Body Composition Auth",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.directory = directory
    app.state.statistics = statistics
    app.state.chat_client = chat_client or ChatClient(
        settings.chat_api_url,
        settings.chat_api_key,
        settings.chat_model,
        settings.chat_timeout_seconds,
    )

    # Last added runs first: CORS, then request id, then the token gate.
    app.add_middleware(BearerAuthMiddleware, jwt_secret=settings.jwt_secret)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(chat.router)
    return app


def run() -> None:
    settings = load_settings()
    uvicorn.run(
        "bodycomp.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    run()
