"""Security dependencies for the admin review endpoints."""
from __future__ import annotations

import hmac
import logging

from fastapi import Depends, Header, HTTPException, status

from paygate.config import Settings, get_settings
from paygate.utils.errors import error_response

logger = logging.getLogger(__name__)


def _extract_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str | None:
    """Read the key from ``Authorization: Bearer ...`` or ``X-API-Key``."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def require_admin(
    token: str | None = Depends(_extract_key),
    settings: Settings = Depends(get_settings),
) -> str:
    """Allow the request only when it carries the configured admin key."""
    expected = settings.admin_api_key
    if not expected:
        logger.error("Admin endpoint called but ADMIN_API_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_response("ADMIN_KEY_NOT_CONFIGURED", "Admin API key is not configured."),
        )
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error_response("NO_API_KEY", "API key required."),
        )
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin request with an invalid key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=error_response("FORBIDDEN", "Invalid admin API key."),
        )
    return "admin"


__all__ = ["require_admin"]
