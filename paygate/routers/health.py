"""Health check endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text

from paygate.config import get_settings
from paygate.db import get_engine
from paygate.services.payments import PaymentService, get_payment_service

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


def _db_status() -> str:
    """Return 'ok' if the DB is reachable, 'error' otherwise."""

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:  # noqa: BLE001
        logger.exception("DB health check failed")
        return "error"


@router.get("", summary="Health check")
def healthcheck(service: PaymentService = Depends(get_payment_service)) -> dict[str, object]:
    settings = get_settings()
    db_status = _db_status()
    gateways = {
        gateway.name: {
            "enabled": gateway.is_enabled(),
            "webhook_signed": bool(gateway.config.webhook_secret),
        }
        for gateway in service.registry
    }
    return {
        "status": "ok" if db_status == "ok" else "degraded",
        "env": settings.app_env,
        "db_status": db_status,
        "default_gateway": settings.default_gateway,
        "gateways": gateways,
    }
