"""Utility helpers for standardized error responses."""
from typing import Any

from fastapi import HTTPException, status

from paygate.errors import (
    FileRejected,
    GatewayNotFound,
    InvalidTransition,
    MissingProof,
    NotFound,
    PaymentError,
    ProviderError,
    SignatureInvalid,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[PaymentError], int], ...] = (
    (GatewayNotFound, status.HTTP_404_NOT_FOUND),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (FileRejected, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingProof, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (SignatureInvalid, status.HTTP_401_UNAUTHORIZED),
)


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


def status_for_error(error: BaseException | None) -> int:
    """Map a payment error onto the HTTP status returned to API callers."""

    for error_cls, http_status in _STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def error_code(error: BaseException | None) -> str:
    if isinstance(error, PaymentError):
        return error.code
    return "PAYMENT_FAILED"


def http_error(
    error: BaseException | None,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> HTTPException:
    """Build the ``HTTPException`` raised for a failed payment operation."""

    details: dict[str, Any] = {}
    if isinstance(error, PaymentError):
        details.update({key: value for key, value in error.details.items() if value is not None})
    if extra:
        details.update(extra)
    return HTTPException(
        status_code=status_for_error(error),
        detail=error_response(error_code(error), message, details or None),
    )


__all__ = ["error_response", "status_for_error", "error_code", "http_error"]
