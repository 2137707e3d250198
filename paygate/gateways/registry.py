"""Name-keyed lookup of the configured gateway adapters."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import httpx

from paygate.config import Settings
from paygate.errors import GatewayNotFound
from paygate.services.storage import ProofStorage

from .base import BaseGateway, GatewayContext
from .chipin import ChipInGateway
from .manual import ManualGateway
from .placeholder import PaypalGateway, StripeGateway
from .toyyibpay import ToyyibpayGateway

logger = logging.getLogger(__name__)


class GatewayRegistry:
    """Holds every known adapter; only enabled ones are resolvable."""

    def __init__(self, gateways: Iterable[BaseGateway] = ()) -> None:
        self._gateways: dict[str, BaseGateway] = {}
        for gateway in gateways:
            self.register(gateway)

    def register(self, gateway: BaseGateway) -> None:
        self._gateways[gateway.get_name()] = gateway

    def get(self, name: str | None) -> BaseGateway:
        """Return the enabled adapter called ``name`` or raise :class:`GatewayNotFound`."""

        gateway = self._gateways.get((name or "").strip().lower())
        if gateway is None or not gateway.is_enabled():
            raise GatewayNotFound(name)
        return gateway

    def has(self, name: str | None) -> bool:
        gateway = self._gateways.get((name or "").strip().lower())
        return gateway is not None and gateway.is_enabled()

    def available(self) -> dict[str, BaseGateway]:
        return {name: gateway for name, gateway in self._gateways.items() if gateway.is_enabled()}

    def names(self) -> list[str]:
        return list(self._gateways)

    def __iter__(self) -> Iterator[BaseGateway]:
        return iter(self._gateways.values())


def build_registry(
    settings: Settings,
    *,
    http_client: httpx.Client | None = None,
    storage: ProofStorage | None = None,
) -> GatewayRegistry:
    """Instantiate every adapter from ``settings.gateways``."""

    context = GatewayContext.from_settings(settings)
    gateways = settings.gateways
    registry = GatewayRegistry(
        [
            ToyyibpayGateway(gateways.toyyibpay, context, http_client=http_client),
            ChipInGateway(gateways.chipin, context, http_client=http_client),
            ManualGateway(gateways.manual, context, storage=storage),
            PaypalGateway(gateways.paypal, context, http_client=http_client),
            StripeGateway(gateways.stripe, context, http_client=http_client),
        ]
    )
    logger.info("Gateway registry built", extra={"enabled": sorted(registry.available())})
    return registry


__all__ = ["GatewayRegistry", "build_registry"]
