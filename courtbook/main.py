"""Main FastAPI application for the court booking calendar."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from courtbook import db
from courtbook.config import ENVIRONMENT
from courtbook.errors import CourtBookError
from courtbook.rate_limit import limiter
from courtbook.routers import bookings, courts, groups, health, time_slots

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting court booking API (%s)", ENVIRONMENT)
    await db.init_db()
    try:
        yield
    finally:
        await db.close_db()


app = FastAPI(
    title="Court Booking Calendar API",
    description="Court bookings, recurring series and group schedules for a tennis club",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("Rate limit exceeded for %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


@app.exception_handler(CourtBookError)
async def _domain_error_handler(request: Request, exc: CourtBookError) -> JSONResponse:
    http_exc = exc.to_http_exception()
    if http_exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(health.router)
app.include_router(courts.router)
app.include_router(time_slots.router)
app.include_router(bookings.router)
app.include_router(groups.router)
