"""Main application entry point."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import redis
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor

from config import (
    API_VERSION,
    CORS_ORIGINS,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_PER_MINUTE,
    RATE_LIMIT_WINDOW_SECONDS,
    REDIS_URL,
)
from database import init_db, engine
from logging_config import setup_logging
from routers import products, orders
from redis_rate_limiter import RedisRateLimiter

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

# Sync client for the rate limiting middleware; connects lazily
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    redis_client.close()
    engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Storefront Service",
    version=API_VERSION,
    lifespan=lifespan
)

if RATE_LIMIT_ENABLED:
    RedisInstrumentor().instrument()
    app.add_middleware(
        RedisRateLimiter,
        redis_client=redis_client,
        requests_per_minute=RATE_LIMIT_PER_MINUTE,
        window_seconds=RATE_LIMIT_WINDOW_SECONDS
    )

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type"],
)

# Instrument FastAPI and SQLAlchemy
FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=engine)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(products.router)
app.include_router(orders.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
