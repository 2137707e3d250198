"""API routers for the payment gateway service."""
from fastapi import APIRouter

from . import admin, callbacks, gateways, health, manual, payments


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(gateways.router)
    api_router.include_router(callbacks.router)
    api_router.include_router(manual.router)
    api_router.include_router(payments.router)
    api_router.include_router(admin.router)
    return api_router
