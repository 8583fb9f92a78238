"""Echo routes with injected delay and failures."""

import logging
import time
from datetime import UTC, datetime

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse

from faultecho.config import get_settings
from faultecho.contracts import (
    EchoBodyResponse,
    EchoConfig,
    EchoQueryResponse,
    ErrorResponse,
    RequestOutcome,
)
from faultecho.namespace import namespace_from_request
from faultecho.services.echo_config import get_echo_config_store
from faultecho.services.errors import MetricsError
from faultecho.services.faults import get_fault_injector
from faultecho.services.metrics import RequestMetricsAggregator, get_aggregator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["echo"])

_FAILURE_RESPONSES = {500: {"model": ErrorResponse}}


def _request_path(request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return path[: get_settings().echo_max_path_length]


async def _record_outcome(
    aggregator: RequestMetricsAggregator, namespace: str, outcome: RequestOutcome
) -> None:
    try:
        await aggregator.ingest(namespace, outcome)
    except MetricsError:
        logger.warning(
            "Request metrics rejected for namespace %s",
            namespace,
            exc_info=True,
            extra={"namespace": namespace},
        )


def _track(
    request: Request,
    background_tasks: BackgroundTasks,
    status_code: int,
    started: float,
) -> None:
    """Queue metrics ingestion to run after the response is sent."""
    try:
        aggregator = get_aggregator()
    except RuntimeError:
        logger.debug("Metrics aggregator not initialized; request not tracked")
        return

    outcome = RequestOutcome(
        method=request.method,
        status_code=status_code,
        success=status_code < 400,
        latency_millis=round((time.perf_counter() - started) * 1000, 2),
        path=_request_path(request),
    )
    background_tasks.add_task(
        _record_outcome, aggregator, namespace_from_request(request), outcome
    )


async def _inject_faults() -> tuple[EchoConfig, bool]:
    config = get_echo_config_store().get()
    decision = await get_fault_injector().apply(config)
    return config, decision.fail


def _failure_response() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@router.get("/echo", response_model=EchoQueryResponse, responses=_FAILURE_RESPONSES)
async def echo_get(request: Request, background_tasks: BackgroundTasks):
    """Echo the query parameters after the configured delay."""
    started = time.perf_counter()
    config, fail = await _inject_faults()
    if fail:
        _track(request, background_tasks, 500, started)
        return _failure_response()

    payload = EchoQueryResponse(
        timestamp=datetime.now(UTC).isoformat(),
        query_params=dict(request.query_params),
        config=config,
    )
    _track(request, background_tasks, 200, started)
    return payload


@router.post("/echo", response_model=EchoBodyResponse, responses=_FAILURE_RESPONSES)
async def echo_post(request: Request, background_tasks: BackgroundTasks):
    """Echo the JSON body (``null`` when absent or not JSON)."""
    started = time.perf_counter()
    config, fail = await _inject_faults()
    if fail:
        _track(request, background_tasks, 500, started)
        return _failure_response()

    try:
        body = await request.json()
    except ValueError:
        body = None

    payload = EchoBodyResponse(
        timestamp=datetime.now(UTC).isoformat(),
        body=body,
        config=config,
    )
    _track(request, background_tasks, 200, started)
    return payload
