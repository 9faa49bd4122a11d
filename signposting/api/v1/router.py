"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from signposting.api.v1 import health, luts

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# LUTS clinical tool
api_router.include_router(
    luts.router,
    prefix="/surgeries",
    tags=["luts"],
)
