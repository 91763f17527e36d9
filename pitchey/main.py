from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pitchey.auth.routes import auth
from pitchey.core import redis as redis_module
from pitchey.core.config import settings
from pitchey.core.exceptions import ServiceUnavailableError, register_exception_handlers
from pitchey.core.log_config import RequestLoggingMiddleware, setup_logging
from pitchey.core.rate_limit import limiter
from pitchey.db.session import SessionLocal
from pitchey.messaging.routes import messages as messages_routes

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("connecting_to_redis")
    redis_module.redis_client = Redis.from_url(
        settings.REDIS_URL, decode_responses=True, encoding="utf-8"
    )

    try:
        await redis_module.redis_client.ping()
        logger.info("redis_connected")
    except Exception as e:
        # Sessions still resolve from the database without the cache
        logger.error("redis_connection_failed", error=str(e))

    yield

    logger.info("closing_redis")
    if redis_module.redis_client:
        await redis_module.redis_client.close()
        redis_module.redis_client = None
    logger.info("redis_closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Pitchey backend: session authentication and messaging",
    version="1.0.0",
)

app.state.limiter = limiter
register_exception_handlers(app, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["authentication"])
app.include_router(messages_routes.router, prefix=settings.API_PREFIX, tags=["messages"])


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": settings.PROJECT_NAME, "version": "1.0.0", "status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    redis_status = "unknown"

    try:
        if redis_module.redis_client:
            await redis_module.redis_client.ping()
            redis_status = "healthy"
    except Exception:
        redis_status = "unhealthy"

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except SQLAlchemyError as exc:
        logger.error("database_unreachable", error=str(exc))
        raise ServiceUnavailableError("Database unavailable", service="database") from exc

    # The cache is optional, so its outage only degrades the service
    overall = "healthy" if redis_status == "healthy" else "degraded"
    return {"status": overall, "redis": redis_status, "database": "healthy"}
