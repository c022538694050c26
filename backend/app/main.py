from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from backend.db import create_engine, create_session_factory, init_db

from .api.routes import router as api_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .middleware import RequestLoggingMiddleware
from .services.reminders import ReminderScheduler
from .services.storage import StorageService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure application services during startup and ensure graceful shutdown."""

    configure_logging()
    settings: Settings = get_settings()

    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    await init_db(engine, session_factory, settings.version)
    storage_service = StorageService(session_factory, tz=settings.tzinfo)

    user = await storage_service.ensure_user(settings.demo_username)
    if settings.seed_demo_data and await storage_service.seed_demo_data(user.id):
        logger.info("Seeded demo data for %s", settings.demo_username)

    reminders = ReminderScheduler(
        storage_service,
        user.id,
        enabled=settings.notifications_enabled,
        hour=settings.reminder_hour,
        minute=settings.reminder_minute,
        breathing_delay_seconds=settings.breathing_reminder_delay_seconds,
        tz=settings.tzinfo,
    )
    if settings.notifications_enabled:
        reminders.start()

    app.state.settings = settings
    app.state.storage_service = storage_service
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.reminders = reminders
    app.state.demo_user_id = user.id

    logger.info(
        "MoodSync started version=%s timezone=%s reminders=%s",
        settings.version,
        settings.timezone,
        "on" if reminders.running else "off",
    )

    try:
        yield
    finally:
        reminders.shutdown()
        await app.state.db_engine.dispose()


app = FastAPI(title="MoodSync", version=get_settings().version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{location}: {message}" if location else message
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": detail, "errors": jsonable_encoder(errors)},
    )


@app.get("/healthz")
async def healthz(request: Request) -> dict[str, str]:
    settings: Settings = request.app.state.settings
    return {"status": "ok", "version": settings.version}


@app.get("/readyz")
async def readyz(request: Request) -> dict[str, Any]:
    storage: StorageService = request.app.state.storage_service
    reminders: ReminderScheduler = request.app.state.reminders

    db_ok = True
    db_detail = "ok"
    try:
        await storage.healthcheck()
    except Exception as exc:
        logger.warning("Database readiness check failed: %s", exc)
        db_ok = False
        db_detail = str(exc)

    return {
        "ready": db_ok,
        "db": {"ok": db_ok, "detail": db_detail},
        "reminders": {"running": reminders.running},
    }


@app.get("/metrics")
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
