"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
The event relay and consumers run separately: python -m src.fp_events.worker
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.fp_admin.api.router import router as admin_router
from src.fp_booking.api.router import router as booking_router
from src.fp_common.database import engine
from src.fp_common.errors import AppError
from src.fp_common.redis_client import close_redis, get_redis
from src.fp_common.response import error_response
from src.fp_gateway.middleware.request_log import RequestLogMiddleware
from src.fp_payment.api.router import router as payment_router
from src.fp_trainer_offert.api.router import router as trainer_offert_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    yield
    # Shutdown
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
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(payment_router, prefix="/api/v1")
app.include_router(booking_router, prefix="/api/v1")
app.include_router(trainer_offert_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
