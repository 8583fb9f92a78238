"""Fault-injection config routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from faultecho.contracts import EchoConfig, EchoConfigUpdate, ErrorResponse
from faultecho.services.echo_config import get_echo_config_store

router = APIRouter(prefix="/config", tags=["config"])

DELAY_ERROR = "Delay must be a non-negative number"
FAILURE_RATE_ERROR = "Failure rate must be a number between 0 and 100"
INVALID_BODY_ERROR = "Invalid request body"


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _validation_message(exc: ValidationError) -> str:
    failed_fields = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
    if "delay" in failed_fields:
        return DELAY_ERROR
    if failed_fields & {"failureRate", "failure_rate"}:
        return FAILURE_RATE_ERROR
    return INVALID_BODY_ERROR


@router.get("", response_model=EchoConfig)
async def get_config() -> EchoConfig:
    """Current delay (ms) and failure rate (percent)."""
    return get_echo_config_store().get()


@router.post("", response_model=EchoConfig, responses={400: {"model": ErrorResponse}})
async def update_config(request: Request):
    """Partially update the config. Omitted fields keep their value."""
    try:
        body = await request.json()
    except ValueError:
        return _bad_request(INVALID_BODY_ERROR)
    if not isinstance(body, dict):
        return _bad_request(INVALID_BODY_ERROR)

    try:
        update = EchoConfigUpdate.model_validate(body)
    except ValidationError as exc:
        return _bad_request(_validation_message(exc))

    return get_echo_config_store().update(update)
