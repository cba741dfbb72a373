"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.mk_admin.api.router import router as admin_router
from src.mk_betting.api.router import router as bet_router
from src.mk_common.database import async_session_factory, engine
from src.mk_common.errors import AppError
from src.mk_common.redis_client import close_redis, get_redis
from src.mk_common.response import error_response
from src.mk_gateway.middleware.request_log import RequestLogMiddleware
from src.mk_market.api.router import router as market_router
from src.mk_scheduler.result_scheduler import AutoResultScheduler
from src.mk_scheduler.sweeper import AutoCloseSweeper, RedisSweepLock
from src.mk_settlement.api.router import router as results_router
from src.mk_wallet.api.router import router as wallet_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start schedulers. Shutdown: stop and dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()

    sweeper = AutoCloseSweeper(
        async_session_factory,
        interval_seconds=settings.AUTO_CLOSE_INTERVAL_SECONDS,
        lock=RedisSweepLock(
            get_redis, ttl_seconds=max(settings.AUTO_CLOSE_INTERVAL_SECONDS - 5, 1)
        ) if settings.AUTO_CLOSE_LOCK_ENABLED else None,
    )
    result_scheduler = AutoResultScheduler(
        async_session_factory,
        delay=timedelta(hours=settings.AUTO_RESULT_DELAY_HOURS),
        interval=timedelta(minutes=settings.AUTO_RESULT_CHECK_MINUTES),
    )
    app.state.auto_close_sweeper = sweeper
    app.state.auto_result_scheduler = result_scheduler
    if settings.SCHEDULER_ENABLED:
        await sweeper.start()
        if settings.AUTO_RESULT_ENABLED:
            await result_scheduler.start()
    yield
    # Shutdown
    await result_scheduler.stop()
    await sweeper.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, exc.category)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(market_router, prefix="/api/v1")
app.include_router(bet_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(results_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
