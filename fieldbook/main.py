"""FastAPI application for Fieldbook – sports field reservations."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fieldbook import db
from fieldbook.config import ENVIRONMENT, LOG_LEVEL
from fieldbook.dependencies import get_booking_service
from fieldbook.errors import BookingError
from fieldbook.rate_limit import limiter
from fieldbook.routers import blacklist, fields, health, reservations, settings, stats, subscriptions
from fieldbook.services.sweeper import ExpirySweeper

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

sweeper = ExpirySweeper(get_booking_service)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init_db()
    await sweeper.start()
    logger.info("Fieldbook started (%s)", ENVIRONMENT)
    try:
        yield
    finally:
        await sweeper.stop()
        await db.close_db()


app = FastAPI(
    title="Fieldbook API",
    description="Availability, conflict checks, pricing and reservations for sports fields",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


for module in (health, fields, reservations, subscriptions, settings, blacklist, stats):
    app.include_router(module.router)
