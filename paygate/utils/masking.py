"""Helpers for masking customer and credential fields before they are logged."""
from __future__ import annotations

from typing import Any, Mapping, Sequence

MASKED_PLACEHOLDER = "***masked***"

# Credentials that must never appear in logs, even partially.
SECRET_KEYS = {
    "usersecretkey",
    "secret_key",
    "authorization",
    "webhook_secret",
    "api_key",
    "x-api-key",
    "x-signature",
}

FULL_MASK_KEYS = {
    "customer_name",
    "full_name",
    "billto",
    "billname_to",
}

CONTACT_KEYS = {"email", "billemail", "phone", "billphone", "mobile"}


def _mask_email(value: Any) -> str:
    text = "" if value is None else str(value)
    if "@" not in text:
        return "***@***"
    _, domain = text.split("@", 1)
    return f"***@{domain or '***'}"


def _mask_phone(value: Any) -> str:
    text = "" if value is None else str(value)
    digits = "".join(ch for ch in text if ch.isdigit())
    if not digits:
        return "***"
    tail = digits[-2:] if len(digits) >= 2 else digits
    return f"***{tail}"


def _mask_leaf(key: str, value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value

    lower = key.lower()
    if lower in SECRET_KEYS:
        return MASKED_PLACEHOLDER
    if lower in FULL_MASK_KEYS:
        return MASKED_PLACEHOLDER
    if "email" in lower:
        return _mask_email(value)
    if "phone" in lower or lower in CONTACT_KEYS:
        return _mask_phone(value)
    return value


def _mask_mapping(data: Mapping[str, Any]) -> dict[str, Any]:
    masked: dict[str, Any] = {}
    for key, value in data.items():
        key = str(key)
        if isinstance(value, Mapping):
            masked[key] = _mask_mapping(value)
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            masked[key] = [
                _mask_mapping(item) if isinstance(item, Mapping) else _mask_leaf(key, item)
                for item in value
            ]
        else:
            masked[key] = _mask_leaf(key, value)
    return masked


def mask_payload(payload: Any) -> Any:
    """Return a copy of a provider or customer payload that is safe to log."""

    if isinstance(payload, Mapping):
        return _mask_mapping(payload)
    if isinstance(payload, list):
        return [mask_payload(item) for item in payload]
    return payload


__all__ = ["MASKED_PLACEHOLDER", "mask_payload"]
