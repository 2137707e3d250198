import pytest

from paygate.config import ChipInConfig
from paygate.errors import SignatureInvalid
from paygate.services.webhook_signatures import compute_signature, verify_callback_signature

BODY = b'{"id":"pur-1","status":"paid"}'


def test_no_secret_skips_verification():
    assert verify_callback_signature("chipin", ChipInConfig(), BODY, {}) is False


def test_valid_signature_is_accepted():
    config = ChipInConfig(webhook_secret="whsec")
    signature = compute_signature("whsec", BODY)

    assert verify_callback_signature("chipin", config, BODY, {"x-signature": signature}) is True
    assert verify_callback_signature("chipin", config, BODY, {"X-Signature": f"sha256={signature}"}) is True


@pytest.mark.parametrize("headers", [{}, {"X-Signature": "bad"}])
def test_missing_or_wrong_signature_is_rejected(headers):
    config = ChipInConfig(webhook_secret="whsec")

    with pytest.raises(SignatureInvalid):
        verify_callback_signature("chipin", config, BODY, headers)


def test_signature_covers_the_raw_body():
    config = ChipInConfig(webhook_secret="whsec")
    signature = compute_signature("whsec", BODY)

    with pytest.raises(SignatureInvalid):
        verify_callback_signature("chipin", config, BODY + b" ", {"X-Signature": signature})
