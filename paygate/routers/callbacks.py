"""Provider webhook endpoint."""
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from paygate.db import get_db
from paygate.errors import GatewayNotFound, SignatureInvalid
from paygate.schemas.payment import PaymentResultRead
from paygate.services.payments import PaymentService, get_payment_service
from paygate.services.webhook_signatures import verify_callback_signature
from paygate.utils.errors import error_response, http_error

router = APIRouter(prefix="/payments/callback", tags=["callbacks"])
logger = logging.getLogger(__name__)


async def _read_payload(request: Request, raw_body: bytes) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = json.loads(raw_body or b"{}")
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error_response("INVALID_PAYLOAD", "Callback body is not valid JSON."),
            )
        if not isinstance(payload, dict):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error_response("INVALID_PAYLOAD", "Callback body must be a JSON object."),
            )
        return payload
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


@router.post("/{gateway}", response_model=PaymentResultRead)
async def handle_callback(
    gateway: str,
    request: Request,
    db: Session = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """Apply a provider notification (JSON or form encoded)."""

    try:
        adapter = service.registry.get(gateway)
    except GatewayNotFound as exc:
        raise http_error(exc, exc.message)

    raw_body = await request.body()
    try:
        verify_callback_signature(adapter.name, adapter.config, raw_body, request.headers)
    except SignatureInvalid as exc:
        raise http_error(exc, exc.message)

    payload = await _read_payload(request, raw_body)
    result = service.handle_callback(db, gateway, payload)
    if not result.success:
        raise http_error(result.error, result.message or "Callback processing failed")
    return PaymentResultRead.from_result(result)
