"""Payment gateway adapters."""
from .base import BaseGateway, GatewayContext, GatewayResult, format_amount, to_minor_units
from .chipin import ChipInGateway
from .manual import ManualGateway
from .placeholder import PaypalGateway, StripeGateway
from .registry import GatewayRegistry, build_registry
from .toyyibpay import ToyyibpayGateway

__all__ = [
    "BaseGateway",
    "GatewayContext",
    "GatewayResult",
    "format_amount",
    "to_minor_units",
    "ChipInGateway",
    "ManualGateway",
    "PaypalGateway",
    "StripeGateway",
    "ToyyibpayGateway",
    "GatewayRegistry",
    "build_registry",
]
