# src/credenciales/main.py
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from credenciales.core import errors
from credenciales.core.config import Settings, get_settings
from credenciales.core.db import Database
from credenciales.core.initial_data import init_super_admin
from credenciales.core.rate_limit import build_rate_limiter, sweep_periodically
from credenciales.core.storage import build_storage

from credenciales.api.auth import router as auth_router
from credenciales.api.settings import router as settings_router
from credenciales.api.users import router as users_router
from credenciales.api.validation import router as validation_router

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger("credenciales")
    root.setLevel(logging.DEBUG if settings.MODE == "development" else logging.INFO)
    if not root.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        root.addHandler(ch)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    sweep_task: Optional[asyncio.Task] = None
    database: Optional[Database] = None
    try:
        logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.MODE)

        # Load Vault secrets (async)
        if settings.VAULT_URL and settings.VAULT_TOKEN:
            logger.info("Loading secrets from Vault...")
            await settings.load_secrets_from_vault_async()
            logger.info("Vault secrets loaded")

        # Initialize DB
        database = Database(
            settings.SQLALCHEMY_DATABASE_URI,
            echo=False,
            pool_size=settings.POOL_SIZE,
        )
        await database.connect()
        await database.create_all()
        async with database.session() as session:
            await init_super_admin(session, settings)
        app.state.db = database

        # Rate limiter and file storage
        app.state.rate_limiter = build_rate_limiter(settings)
        app.state.storage = await build_storage(settings)
        sweep_task = asyncio.create_task(
            sweep_periodically(app.state.rate_limiter, settings.RATE_LIMIT_SWEEP_SECONDS)
        )

        yield

    finally:
        if sweep_task:
            sweep_task.cancel()
            with suppress(asyncio.CancelledError):
                await sweep_task
        limiter = getattr(app.state, "rate_limiter", None)
        if limiter is not None:
            with suppress(Exception):
                await limiter.close()
        if database is not None:
            await database.dispose()
        logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(errors.AppError)
    async def app_error_handler(request: Request, exc: errors.AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        error = errors.ValidationError(message)
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = errors.InternalError()
        return JSONResponse(status_code=error.status_code, content=error.to_payload())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Health check route
    @app.get("/health")
    async def health_check(request: Request):
        database_ok = await request.app.state.db.ping()
        return {
            "status": "ok" if database_ok else "error",
            "database": "connected" if database_ok else "disconnected",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # The public validation router goes first; it must stay outside the auth gate.
    app.include_router(validation_router, prefix=settings.API_V1_STR)
    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(users_router, prefix=settings.API_V1_STR)
    app.include_router(settings_router, prefix=settings.API_V1_STR)
    return app
