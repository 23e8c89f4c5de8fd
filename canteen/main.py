"""FastAPI entrypoint for the campus canteen ordering service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from canteen.api.v1.api import api_router
from canteen.core.config import settings
from canteen.db import session as db_session
from canteen.realtime import socket
from canteen.realtime.relay import relay
from canteen.realtime.timer_sync import TimerSyncBroadcaster

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.jwt_secret_key.startswith("dev-only"):
        logger.warning("JWT_SECRET_KEY not set; using development fallback secret.")
    if settings.payments_demo_mode:
        logger.info("[PAYMENTS] Razorpay keys not configured; running in demo mode.")
    await db_session.create_schema()

    broadcaster = TimerSyncBroadcaster(
        relay,
        session_factory=db_session.SessionLocal,
        interval_seconds=settings.timer_sync_interval_seconds,
    )
    app.state.timer_sync = broadcaster
    if settings.timer_sync_interval_seconds > 0:
        broadcaster.start()
    try:
        yield
    finally:
        await broadcaster.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(api_router, prefix="/api/v1")
app.include_router(socket.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}
