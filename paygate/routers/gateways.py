"""Gateway listing endpoint."""
from fastapi import APIRouter, Depends

from paygate.schemas.payment import GatewayRead
from paygate.services.payments import PaymentService, get_payment_service

router = APIRouter(prefix="/gateways", tags=["gateways"])


@router.get("", response_model=list[GatewayRead])
def list_gateways(service: PaymentService = Depends(get_payment_service)):
    """Return the enabled gateways and their display names."""

    return [
        GatewayRead(name=name, display_name=display_name)
        for name, display_name in service.available_gateways().items()
    ]
