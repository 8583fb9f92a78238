"""Request metrics routes."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request

from faultecho.contracts import MetricsSnapshot, ResetResponse
from faultecho.namespace import namespace_from_request
from faultecho.services.errors import StoreDataError, StoreUnavailableError
from faultecho.services.metrics import DEFAULT_QUERY_LIMIT, get_aggregator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=MetricsSnapshot)
async def get_metrics(
    request: Request,
    limit: int = Query(
        DEFAULT_QUERY_LIMIT, ge=1, le=1000, description="Recent requests to return"
    ),
) -> MetricsSnapshot:
    """Windowed stats, recent requests and bucket series for the caller's namespace."""
    namespace = namespace_from_request(request)
    try:
        aggregator = get_aggregator()
        return await aggregator.query(namespace, limit)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except StoreUnavailableError as e:
        logger.warning(
            "Metrics query failed for namespace %s: %s",
            namespace,
            e,
            extra={"namespace": namespace},
        )
        raise HTTPException(status_code=503, detail=str(e)) from e
    except StoreDataError as e:
        logger.error(
            "Metrics query failed for namespace %s: %s",
            namespace,
            e,
            extra={"namespace": namespace},
        )
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/reset", response_model=ResetResponse)
async def reset_metrics(request: Request) -> ResetResponse:
    """Drop all metrics state of the caller's namespace."""
    namespace = namespace_from_request(request)
    try:
        aggregator = get_aggregator()
        await aggregator.reset(namespace)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except StoreUnavailableError as e:
        logger.warning(
            "Metrics reset failed for namespace %s: %s",
            namespace,
            e,
            extra={"namespace": namespace},
        )
        raise HTTPException(status_code=503, detail=str(e)) from e
    except StoreDataError as e:
        logger.error(
            "Metrics reset failed for namespace %s: %s",
            namespace,
            e,
            extra={"namespace": namespace},
        )
        raise HTTPException(status_code=500, detail=str(e)) from e
    return ResetResponse(success=True)
