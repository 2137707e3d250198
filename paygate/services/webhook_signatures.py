"""HMAC verification for gateway callbacks."""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Mapping

from paygate.config import GatewayConfig
from paygate.errors import SignatureInvalid

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Signature"


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            return value
    return None


def compute_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_callback_signature(
    gateway: str,
    config: GatewayConfig,
    raw_body: bytes,
    headers: Mapping[str, str],
) -> bool:
    """Check ``X-Signature`` when the gateway has a ``webhook_secret``.

    Returns ``False`` when no secret is configured (nothing to check) and
    ``True`` once the signature matches. Raises :class:`SignatureInvalid`
    otherwise.
    """

    secret = config.webhook_secret
    if not secret:
        return False

    provided = _get_header(headers, SIGNATURE_HEADER)
    if not provided:
        logger.warning("Callback signature missing", extra={"gateway": gateway})
        raise SignatureInvalid("Signature header missing.", details={"gateway": gateway})

    expected = compute_signature(secret, raw_body)
    candidate = provided.strip()
    if candidate.lower().startswith("sha256="):
        candidate = candidate.split("=", 1)[1]
    if not hmac.compare_digest(expected, candidate.lower()):
        logger.warning("Callback signature mismatch", extra={"gateway": gateway})
        raise SignatureInvalid("Invalid callback signature.", details={"gateway": gateway})
    return True


__all__ = ["SIGNATURE_HEADER", "compute_signature", "verify_callback_signature"]
