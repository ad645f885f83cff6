"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.rs_catalog.api.router import router as catalog_router
from src.rs_common.database import engine
from src.rs_common.enums import ErrorKind
from src.rs_common.errors import AppError, InternalError, StoreError
from src.rs_common.logging_setup import configure_logging
from src.rs_common.response import error_response
from src.rs_coupon.api.router import router as coupon_router
from src.rs_gateway.middleware.request_log import RequestLogMiddleware
from src.rs_order.api.router import router as order_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: configure logging, verify DB connection. Shutdown: dispose."""
    configure_logging(settings.LOG_LEVEL)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("%s %s started", settings.APP_NAME, VERSION)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=VERSION,
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    message = exc.message
    if isinstance(exc, StoreError) and settings.DEBUG and exc.detail:
        message = f"{message}: {exc.detail}"
    resp = error_response(exc.code, message, exc.kind.value, _request_id(request))
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{loc}: {first.get('msg', 'invalid')}" if loc else first.get("msg", "invalid")
    resp = error_response(
        1001, f"Invalid input: {detail}", ErrorKind.VALIDATION.value, _request_id(request)
    )
    return JSONResponse(status_code=422, content=resp.model_dump())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError(f"{type(exc).__name__}: {exc}") if settings.DEBUG else InternalError()
    resp = error_response(err.code, err.message, err.kind.value, _request_id(request))
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


app.include_router(order_router, prefix="/api/v1")
app.include_router(coupon_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}
