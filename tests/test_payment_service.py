from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from paygate.errors import GatewayNotFound, NotFound, ValidationError
from paygate.models import Payment, PaymentStatus
from paygate.services import state_machine


def test_round_trip_manual_payment(db_session, payment_service):
    result = payment_service.create_payment(
        db_session, {"amount": 100.50, "gateway": "manual", "customer_email": "a@b.com"}
    )

    assert result.success is True
    payment = payment_service.get_payment(db_session, result.payment.id)
    assert payment.status == PaymentStatus.PENDING
    assert payment.reference_id.startswith("PAY-")
    assert payment.amount == Decimal("100.50")
    assert payment.formatted_amount == "100.50 MYR"
    assert payment_service.get_payment_by_reference(db_session, payment.reference_id).id == payment.id


def test_default_gateway_is_used_when_none_given(db_session, payment_service):
    result = payment_service.create_payment(db_session, {"amount": "10.00"})

    assert result.success is True
    assert result.payment.gateway == "manual"


def test_unknown_gateway_creates_no_record(db_session, payment_service):
    result = payment_service.create_payment(db_session, {"gateway": "unknown", "amount": "10.00"})

    assert result.success is False
    assert result.message == "Gateway 'unknown' not found or not enabled"
    assert isinstance(result.error, GatewayNotFound)
    assert db_session.query(Payment).count() == 0


def test_disabled_gateway_is_not_resolvable(db_session, payment_service):
    result = payment_service.create_payment(
        db_session, {"gateway": "paypal", "amount": "10.00", "customer_email": "a@b.com"}
    )

    assert result.success is False
    assert isinstance(result.error, GatewayNotFound)


def test_validation_error_becomes_failure_result(db_session, payment_service):
    result = payment_service.create_payment(db_session, {"gateway": "chipin", "amount": "10.00"})

    assert result.success is False
    assert result.message == "Field 'customer_email' is required for chipin gateway"
    assert isinstance(result.error, ValidationError)
    assert db_session.query(Payment).count() == 0


def test_caller_supplied_reference_is_kept(db_session, payment_service):
    result = payment_service.create_payment(db_session, {"amount": "5.00", "reference_id": "INV-2024-0001"})

    assert result.payment.reference_id == "INV-2024-0001"


def test_callback_routes_to_gateway(db_session, payment_service, provider):
    provider.add("POST", "/index.php/api/createBill", json=[{"BillCode": "bcX"}])
    created = payment_service.create_payment(
        db_session,
        {"gateway": "toyyibpay", "amount": "12.00", "customer_name": "A", "customer_email": "a@b.com"},
    )

    result = payment_service.handle_callback(db_session, "toyyibpay", {"billcode": "bcX", "status_id": "1"})

    assert result.success is True
    assert result.payment.id == created.payment.id
    assert result.payment.status == PaymentStatus.PAID


def test_callback_for_unknown_gateway(db_session, payment_service):
    result = payment_service.handle_callback(db_session, "nope", {})

    assert result.success is False
    assert isinstance(result.error, GatewayNotFound)


def test_verify_on_manual_is_not_supported(db_session, payment_service):
    result = payment_service.verify_payment(db_session, "manual", "anything")

    assert result.success is False
    assert result.message == "Manual payments require admin verification"


def test_manual_review_through_service(db_session, payment_service, make_proof):
    created = payment_service.create_payment(db_session, {"amount": "40.00"})

    missing = payment_service.approve_manual_payment(db_session, created.payment.id)
    uploaded = payment_service.upload_proof(db_session, created.payment.id, make_proof())
    approved = payment_service.approve_manual_payment(db_session, created.payment.id)

    assert missing.success is False
    assert uploaded.success is True
    assert approved.success is True
    assert approved.payment.status == PaymentStatus.PAID


def test_manual_actions_refuse_other_gateways(db_session, payment_service, provider):
    provider.add("POST", "/api/v1/purchases/", json={"id": "p-9", "checkout_url": "https://c/p-9"})
    created = payment_service.create_payment(
        db_session, {"gateway": "chipin", "amount": "9.00", "customer_email": "a@b.com"}
    )

    result = payment_service.reject_manual_payment(db_session, created.payment.id)

    assert result.success is False
    assert result.message == "Manual payment not found"
    assert isinstance(result.error, NotFound)
    assert created.payment.status == PaymentStatus.PENDING


def test_external_reference_scenario(db_session, payment_service, make_proof):
    first = payment_service.create_payment_with_external_reference(db_session, {"amount": "10.00"}, "ORDER-1")
    state_machine.mark_failed(db_session, first.payment, reason="declined")
    first.payment.created_at = datetime.now(tz=UTC) - timedelta(minutes=5)
    db_session.commit()

    second = payment_service.create_payment_with_external_reference(db_session, {"amount": "10.00"}, "ORDER-1")
    payment_service.upload_proof(db_session, second.payment.id, make_proof())
    payment_service.approve_manual_payment(db_session, second.payment.id)

    assert payment_service.has_successful_payment(db_session, "ORDER-1") is True
    assert payment_service.latest_by_external_reference(db_session, "ORDER-1").id == second.payment.id
    assert payment_service.successful_by_external_reference(db_session, "ORDER-1").id == second.payment.id
    assert [p.id for p in payment_service.find_by_external_reference(db_session, "ORDER-1")] == [
        second.payment.id,
        first.payment.id,
    ]


def test_external_reference_type_only_narrows(db_session, payment_service):
    payment_service.create_payment_with_external_reference(db_session, {"amount": "10.00"}, "42", "subscription")
    payment_service.create_payment_with_external_reference(db_session, {"amount": "10.00"}, "42")

    assert len(payment_service.find_by_external_reference(db_session, "42")) == 2
    assert len(payment_service.find_by_external_reference(db_session, "42", "subscription")) == 1
    assert payment_service.find_by_external_reference(db_session, "42", "invoice") == []
    assert payment_service.has_successful_payment(db_session, "42", "subscription") is False
    assert payment_service.latest_by_external_reference(db_session, "missing") is None


def test_untyped_external_reference_scenario(db_session, payment_service, make_proof):
    first = payment_service.create_payment(db_session, {"amount": "10.00", "external_reference_id": "ORDER-1"})
    state_machine.mark_failed(db_session, first.payment, reason="declined")
    first.payment.created_at = datetime.now(tz=UTC) - timedelta(minutes=5)
    db_session.commit()

    second = payment_service.create_payment(db_session, {"amount": "10.00", "external_reference_id": "ORDER-1"})
    payment_service.upload_proof(db_session, second.payment.id, make_proof())
    payment_service.approve_manual_payment(db_session, second.payment.id)

    assert second.payment.reference_type is None
    assert len(payment_service.find_by_external_reference(db_session, "ORDER-1")) == 2
    assert payment_service.has_successful_payment(db_session, "ORDER-1") is True
    assert payment_service.latest_by_external_reference(db_session, "ORDER-1").id == second.payment.id


def test_invalid_product_quantity_becomes_failure_result(db_session, payment_service, provider):
    result = payment_service.create_payment(
        db_session,
        {
            "gateway": "chipin",
            "amount": "5.00",
            "customer_email": "a@b.com",
            "products": [{"name": "x", "price": 5, "quantity": "two"}],
        },
    )

    assert result.success is False
    assert isinstance(result.error, ValidationError)
    assert provider.requests == []
    assert db_session.query(Payment).count() == 0


def test_unexpected_adapter_error_becomes_failure_result(monkeypatch, db_session, payment_service, registry):
    def _broken(db, data):
        raise OSError("disk full")

    monkeypatch.setattr(registry.get("manual"), "create_payment", _broken)

    result = payment_service.create_payment(db_session, {"amount": "10.00"})

    assert result.success is False
    assert result.message == "Payment creation failed"
    assert isinstance(result.error, OSError)
    assert db_session.query(Payment).count() == 0


def test_build_payment_service_shares_one_http_client():
    from paygate.services.payments import build_payment_service

    service = build_payment_service()
    clients = {gateway.http for gateway in service.registry if gateway.name != "manual"}

    assert len(clients) == 1
    clients.pop().close()


def test_payments_by_status_latest_first(db_session, payment_service):
    older = payment_service.create_payment(db_session, {"amount": "1.00"}).payment
    older.created_at = datetime.now(tz=UTC) - timedelta(hours=1)
    db_session.commit()
    newer = payment_service.create_payment(db_session, {"amount": "2.00"}).payment

    pending = payment_service.get_payments_by_status(db_session, "pending")

    assert [p.id for p in pending] == [newer.id, older.id]
    assert payment_service.get_payments_by_status(db_session, PaymentStatus.PAID) == []


def test_available_gateways_lists_enabled_only(payment_service):
    assert payment_service.available_gateways() == {
        "toyyibpay": "ToyyibPay",
        "chipin": "CHIP",
        "manual": "Manual Payment",
    }


def test_placeholder_gateway_records_pending_payment(db_session):
    from paygate.config import GatewayConfig
    from paygate.gateways import GatewayContext, StripeGateway

    gateway = StripeGateway(
        GatewayConfig(name="Stripe", enabled=True),
        GatewayContext(base_url="https://shop.test"),
    )

    result = gateway.create_payment(db_session, {"amount": "3.00", "customer_email": "a@b.com"})

    assert result.success is False
    assert result.message == "Stripe gateway is not yet implemented"
    assert result.payment.status == PaymentStatus.PENDING
    assert gateway.handle_callback(db_session, {}).message == "Stripe callback handling is not yet implemented"
    assert gateway.verify_payment(db_session, "x").message == "Stripe payment verification is not yet implemented"


def test_registry_get_raises_for_unknown(registry):
    with pytest.raises(GatewayNotFound):
        registry.get("bitcoin")
    assert registry.has("manual") is True
    assert registry.has("stripe") is False
    assert set(registry.names()) == {"toyyibpay", "chipin", "manual", "paypal", "stripe"}
