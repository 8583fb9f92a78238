"""Health check routes."""

import logging

from fastapi import APIRouter, Response, status

from faultecho.config import get_settings
from faultecho.contracts import DependencyHealth, HealthResponse
from faultecho.services.errors import StoreDataError, StoreUnavailableError
from faultecho.services.metrics import get_aggregator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_store_readiness() -> tuple[str, DependencyHealth]:
    try:
        store = get_aggregator().store
    except RuntimeError as exc:
        return "none", DependencyHealth(status="error", detail=str(exc))

    try:
        alive = await store.ping()
    except (StoreUnavailableError, StoreDataError) as exc:
        return store.backend_name, DependencyHealth(status="error", detail=str(exc))

    if not alive:
        return store.backend_name, DependencyHealth(
            status="error", detail="Store ping returned false"
        )
    return store.backend_name, DependencyHealth(status="ok")


async def _build_health_response() -> tuple[HealthResponse, bool]:
    settings = get_settings()
    redis_required = settings.readiness_require_redis or settings.is_production
    backend, store_health = await _check_store_readiness()

    if backend == "memory" and redis_required:
        store_health = DependencyHealth(
            status="error",
            detail="FAULTECHO_REDIS_URL not set; using in-memory metrics store",
        )
    elif backend == "memory":
        store_health = DependencyHealth(
            status="skipped", detail="FAULTECHO_REDIS_URL not set"
        )

    ready = store_health.status in {"ok", "skipped"}
    payload = HealthResponse(
        status="ok" if ready else "degraded",
        version=settings.version,
        store_backend=backend,
        store=store_health,
    )
    return payload, ready


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness endpoint with store status details.

    Always returns 200 while the process is alive; see /ready for gating.
    """
    payload, _ = await _build_health_response()
    return payload


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(response: Response) -> HealthResponse:
    """Readiness endpoint for load balancers and traffic gating."""
    payload, ready = await _build_health_response()
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return payload
