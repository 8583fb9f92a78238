"""faultecho API server."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from faultecho.config import get_settings
from faultecho.contracts import EchoConfig
from faultecho.logging import configure_logging
from faultecho.middleware import CorrelationIDMiddleware
from faultecho.routes import api_router, health_router
from faultecho.services.echo_config import init_echo_config
from faultecho.services.metrics import (
    AggregatorConfig,
    clear_aggregator,
    init_aggregator,
)
from faultecho.services.redis import close_redis, connect_redis
from faultecho.services.store import InMemoryMetricsStore, MetricsStore, RedisMetricsStore

# Configure logging (FAULTECHO_LOG_FORMAT=json for structured output).
_boot_settings = get_settings()
configure_logging(log_format=_boot_settings.log_format, debug=_boot_settings.debug)
logger = logging.getLogger(__name__)


class AppResponse(BaseModel):
    """App response."""

    name: str = "faultecho"
    version: str = get_settings().version
    docs: str = "/docs"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting faultecho server...")

    settings = get_settings()

    init_echo_config(
        EchoConfig(
            delay=settings.echo_default_delay_ms,
            failure_rate=settings.echo_default_failure_rate,
        )
    )

    redis_client = None
    store: MetricsStore
    if settings.redis_url:
        redis_client = await connect_redis(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
        store = RedisMetricsStore(redis_client)
        logger.info("Redis connected")
    else:
        store = InMemoryMetricsStore()
        logger.warning(
            "FAULTECHO_REDIS_URL not set; request metrics are kept in process memory"
        )

    init_aggregator(store, AggregatorConfig.from_settings(settings))

    yield

    logger.info("Shutting down faultecho server...")
    clear_aggregator()

    if redis_client:
        await close_redis()
        logger.info("Redis disconnected")


app_settings = get_settings()
app = FastAPI(
    title="faultecho",
    description="Fault-injection echo service with live per-namespace traffic metrics",
    version=app_settings.version,
    lifespan=lifespan,
)

# Runs before CORS so the ID is on every response.
app.add_middleware(CorrelationIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_allow_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(api_router)


@app.get("/")
async def root() -> AppResponse:
    return AppResponse()


def main():
    """Run the server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "faultecho.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
