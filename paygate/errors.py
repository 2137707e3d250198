"""Exception taxonomy for payment orchestration."""
from __future__ import annotations

from typing import Any


class PaymentError(Exception):
    """Base class for every error raised by the payment core."""

    code = "PAYMENT_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PaymentError, ValueError):
    """A required field is missing or invalid for the selected gateway."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, *, field: str | None = None, gateway: str | None = None) -> None:
        super().__init__(message, details={"field": field, "gateway": gateway})
        self.field = field
        self.gateway = gateway

    @classmethod
    def missing_field(cls, field: str, gateway: str) -> "ValidationError":
        return cls(f"Field '{field}' is required for {gateway} gateway", field=field, gateway=gateway)


class GatewayNotFound(PaymentError):
    """The requested gateway is unknown or disabled."""

    code = "GATEWAY_NOT_FOUND"

    def __init__(self, gateway: str | None) -> None:
        super().__init__(f"Gateway '{gateway}' not found or not enabled", details={"gateway": gateway})
        self.gateway = gateway


class NotFound(PaymentError):
    """No payment record matches the lookup key."""

    code = "PAYMENT_NOT_FOUND"

    def __init__(self, message: str = "Payment not found", **details: Any) -> None:
        super().__init__(message, details=details)


class ProviderError(PaymentError):
    """The provider call failed or returned a payload we cannot use."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, *, http_status: int | None = None, response: Any = None) -> None:
        super().__init__(message, details={"http_status": http_status})
        self.http_status = http_status
        self.response = response


class MissingProof(PaymentError):
    """A manual payment cannot be approved without an uploaded proof."""

    code = "MISSING_PROOF"

    def __init__(self, message: str = "No proof file uploaded") -> None:
        super().__init__(message)


class FileRejected(PaymentError):
    """An uploaded proof violates the size or extension constraints."""

    code = "FILE_REJECTED"


class InvalidTransition(PaymentError):
    """The payment is no longer in a state that allows the requested action."""

    code = "INVALID_TRANSITION"


class SignatureInvalid(PaymentError):
    """A webhook signature is missing or does not match the configured secret."""

    code = "WEBHOOK_SIGNATURE_INVALID"


__all__ = [
    "PaymentError",
    "ValidationError",
    "GatewayNotFound",
    "NotFound",
    "ProviderError",
    "MissingProof",
    "FileRejected",
    "InvalidTransition",
    "SignatureInvalid",
]
