"""Paystack adapter against a stubbed HTTP session (no network)."""
import hashlib
import hmac
from decimal import Decimal

import pytest
import requests

from foodbot.core.exceptions import GatewayError
from foodbot.payments.gateway import PaymentDraft, VerificationStatus
from foodbot.payments.paystack import PaystackGateway, payment_details_from, placeholder_email, to_minor_units


class StubResponse:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class StubHttp:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.exc:
            raise self.exc
        return self.response


def gateway_with(http):
    return PaystackGateway(secret_key="sk_test_123", base_url="https://api.paystack.test/", timeout=3, http=http)


DRAFT = PaymentDraft(
    reference="FB-ABC",
    order_number="ORD1",
    customer_identifier="+234 801 234 5678",
    total_amount=Decimal("10500.50"),
    customer_name="Ada",
)


def test_minor_units_and_email():
    assert to_minor_units(Decimal("10500.50")) == 1050050
    assert to_minor_units(3500) == 350000
    assert placeholder_email("+234 801 234 5678") == "2348012345678@customers.foodbot.local"


def test_create_payment_posts_kobo_with_timeout():
    http = StubHttp(StubResponse({"status": True, "data": {"authorization_url": "https://checkout.test/x", "access_code": "AC1"}}))

    payment = gateway_with(http).create_payment(DRAFT)

    assert payment.pay_url == "https://checkout.test/x"
    assert payment.gateway_reference == "AC1"
    method, url, kwargs = http.calls[0]
    assert method == "POST"
    assert url == "https://api.paystack.test/transaction/initialize"
    assert kwargs["timeout"] == 3
    assert kwargs["json"]["amount"] == 1050050
    assert kwargs["json"]["reference"] == "FB-ABC"
    assert kwargs["json"]["callback_url"].endswith("/payments/callback")
    assert kwargs["headers"]["Authorization"] == "Bearer sk_test_123"


@pytest.mark.parametrize("http", [
    StubHttp(exc=requests.Timeout("slow")),
    StubHttp(exc=requests.ConnectionError("down")),
    StubHttp(StubResponse({"message": "oops"}, status_code=500)),
    StubHttp(StubResponse(ValueError("not json"))),
    StubHttp(StubResponse({"status": False, "message": "Invalid key"})),
    StubHttp(StubResponse({"status": True, "data": {}})),
])
def test_create_payment_failures_raise_gateway_error(http):
    with pytest.raises(GatewayError):
        gateway_with(http).create_payment(DRAFT)


@pytest.mark.parametrize("provider_status, expected", [
    ("success", VerificationStatus.SUCCESS),
    ("failed", VerificationStatus.FAIL),
    ("abandoned", VerificationStatus.FAIL),
    ("reversed", VerificationStatus.FAIL),
    ("ongoing", VerificationStatus.PENDING),
    ("pending", VerificationStatus.PENDING),
    ("", VerificationStatus.PENDING),
])
def test_verify_maps_status(provider_status, expected):
    http = StubHttp(StubResponse({"status": True, "data": {"status": provider_status, "reference": "FB-ABC"}}))
    result = gateway_with(http).verify_payment("FB-ABC")
    assert result.status == expected
    assert http.calls[0][1] == "https://api.paystack.test/transaction/verify/FB-ABC"


def test_webhook_signature():
    gateway = gateway_with(StubHttp())
    body = b'{"event":"charge.success"}'
    good = hmac.new(b"sk_test_123", body, hashlib.sha512).hexdigest()

    assert gateway.verify_webhook_signature(body, good) is True
    assert gateway.verify_webhook_signature(body + b" ", good) is False
    assert gateway.verify_webhook_signature(body, None) is False
    assert PaystackGateway(secret_key="", http=StubHttp()).verify_webhook_signature(body, good) is False


def test_payment_details_from():
    details = payment_details_from({"channel": "card", "id": 5, "paid_at": "2024-01-01T10:00:00Z", "authorization": {"last4": "4081"}})
    assert details == {
        "channel": "card",
        "transaction_id": 5,
        "paid_at": "2024-01-01T10:00:00Z",
        "card_last4": "4081",
        "bank": None,
    }
