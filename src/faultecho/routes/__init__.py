"""API routes."""

from fastapi import APIRouter

from faultecho.routes.config import router as config_router
from faultecho.routes.echo import router as echo_router
from faultecho.routes.health import router as health_router
from faultecho.routes.metrics import router as metrics_router

api_router = APIRouter(prefix="/api")

api_router.include_router(echo_router)
api_router.include_router(config_router)
api_router.include_router(metrics_router)

__all__ = [
    "api_router",
    "health_router",
]
