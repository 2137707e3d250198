from pathlib import Path

import pytest

from paygate.errors import FileRejected, InvalidTransition, MissingProof, NotFound
from paygate.models import Payment, PaymentStatus


@pytest.fixture
def gateway(registry):
    return registry.get("manual")


def _pending(db_session, gateway, **overrides):
    data = {"amount": "75.00", "customer_email": "buyer@example.com"}
    data.update(overrides)
    result = gateway.create_payment(db_session, data)
    assert result.success
    return result.payment


def test_create_without_proof_requires_upload(db_session, gateway):
    result = gateway.create_payment(db_session, {"amount": "100.50", "customer_email": "a@b.com"})

    assert result.success is True
    assert result.requires_upload is True
    payment = result.payment
    assert payment.status == PaymentStatus.PENDING
    assert payment.reference_id.startswith("PAY-")
    assert payment.is_manual_payment is True
    assert result.payment_url == f"https://shop.test/payments/manual/{payment.id}/upload"


def test_create_with_proof_stores_file(db_session, gateway, make_proof, tmp_path):
    result = gateway.create_payment(
        db_session,
        {"amount": "20.00", "proof_file": make_proof("Transfer.PDF", size=200)},
    )

    assert result.success is True
    assert result.requires_upload is False
    payment = result.payment
    assert payment.proof_file_path.startswith("payment-proofs/")
    assert payment.proof_file_path.endswith(".pdf")
    assert (Path(tmp_path) / payment.proof_file_path).read_bytes() == b"x" * 200
    assert payment.metadata_["original_filename"] == "Transfer.PDF"
    assert "proof_uploaded_at" in payment.metadata_


def test_create_with_rejected_proof_creates_no_record(db_session, gateway, make_proof):
    result = gateway.create_payment(db_session, {"amount": "20.00", "proof_file": make_proof("a.exe")})

    assert result.success is False
    assert isinstance(result.error, FileRejected)
    assert db_session.query(Payment).count() == 0


def test_file_of_exactly_max_size_is_accepted(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)

    result = gateway.handle_proof_upload(db_session, payment.id, make_proof(size=1024))

    assert result.success is True
    assert result.message == "Payment proof uploaded successfully. Awaiting verification."
    assert result.payment.proof_file_path is not None
    assert result.payment.status == PaymentStatus.PENDING


def test_file_one_byte_over_is_rejected(db_session, gateway, make_proof, tmp_path):
    payment = _pending(db_session, gateway)

    result = gateway.handle_proof_upload(db_session, payment.id, make_proof(size=1025))

    assert result.success is False
    assert result.message == "File size exceeds maximum allowed size of 1KB"
    assert isinstance(result.error, FileRejected)
    db_session.refresh(payment)
    assert payment.proof_file_path is None
    assert not (Path(tmp_path) / "payment-proofs").exists()


def test_extension_outside_allow_list_is_rejected(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)

    result = gateway.handle_proof_upload(db_session, payment.id, make_proof("invoice.docx", size=10))

    assert result.success is False
    assert result.message == "File type not allowed. Allowed types: jpg, jpeg, png, pdf"


def test_size_is_checked_before_extension(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)

    result = gateway.handle_proof_upload(db_session, payment.id, make_proof("invoice.docx", size=4096))

    assert result.message.startswith("File size exceeds")


def test_upload_for_unknown_payment(db_session, gateway, make_proof):
    result = gateway.handle_proof_upload(db_session, "missing", make_proof())

    assert result.success is False
    assert result.message == "Payment not found"
    assert isinstance(result.error, NotFound)


def test_upload_after_approval_is_refused(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)
    gateway.handle_proof_upload(db_session, payment.id, make_proof())
    gateway.approve_payment(db_session, payment.id)

    result = gateway.handle_proof_upload(db_session, payment.id, make_proof())

    assert result.success is False
    assert isinstance(result.error, InvalidTransition)


def test_approve_without_proof_fails(db_session, gateway):
    payment = _pending(db_session, gateway)

    result = gateway.approve_payment(db_session, payment.id)

    assert result.success is False
    assert result.message == "No proof file uploaded"
    assert isinstance(result.error, MissingProof)
    db_session.refresh(payment)
    assert payment.status == PaymentStatus.PENDING
    assert payment.paid_at is None


def test_approve_with_proof_marks_paid(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)
    gateway.handle_proof_upload(db_session, payment.id, make_proof())

    result = gateway.approve_payment(db_session, payment.id)

    assert result.success is True
    assert result.message == "Payment approved successfully"
    assert result.payment.status == PaymentStatus.PAID
    assert result.payment.paid_at is not None
    assert result.payment.gateway_response == {"approved_by_admin": True}


def test_approve_twice_is_idempotent(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)
    gateway.handle_proof_upload(db_session, payment.id, make_proof())
    first = gateway.approve_payment(db_session, payment.id)
    paid_at = first.payment.paid_at

    second = gateway.approve_payment(db_session, payment.id)

    assert second.success is True
    assert second.payment.paid_at == paid_at


def test_reject_uses_default_reason(db_session, gateway):
    payment = _pending(db_session, gateway, metadata={"order": "ORD-9"})

    result = gateway.reject_payment(db_session, payment.id)

    assert result.success is True
    assert result.message == "Payment rejected"
    assert result.payment.status == PaymentStatus.FAILED
    assert result.payment.metadata_ == {"order": "ORD-9", "failure_reason": "Payment proof rejected by admin"}


def test_reject_with_reason(db_session, gateway):
    payment = _pending(db_session, gateway)

    result = gateway.reject_payment(db_session, payment.id, "Amount does not match")

    assert result.payment.metadata_["failure_reason"] == "Amount does not match"


def test_reject_after_approval_cannot_flip_paid(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)
    gateway.handle_proof_upload(db_session, payment.id, make_proof())
    gateway.approve_payment(db_session, payment.id)

    result = gateway.reject_payment(db_session, payment.id, "too late")

    assert result.success is False
    assert isinstance(result.error, InvalidTransition)
    db_session.refresh(payment)
    assert payment.status == PaymentStatus.PAID


def test_approve_after_rejection_is_refused(db_session, gateway, make_proof):
    payment = _pending(db_session, gateway)
    gateway.handle_proof_upload(db_session, payment.id, make_proof())
    gateway.reject_payment(db_session, payment.id)

    result = gateway.approve_payment(db_session, payment.id)

    assert result.success is False
    assert isinstance(result.error, InvalidTransition)


def test_callbacks_and_verification_are_not_supported(db_session, gateway):
    callback = gateway.handle_callback(db_session, {"id": "x"})
    verify = gateway.verify_payment(db_session, "x")

    assert callback.success is False
    assert callback.message == "Manual payments do not support callbacks"
    assert verify.success is False
    assert verify.message == "Manual payments require admin verification"
