"""
Paystack adapter.

Amounts go over the wire in the minor unit (kobo). Every call is bounded by
GATEWAY_TIMEOUT_SECONDS; verify is read-only and safe to retry.
"""
import hashlib
import hmac
import logging
import re
from decimal import Decimal

import requests

from foodbot.core.config import settings
from foodbot.core.exceptions import GatewayError
from .gateway import GatewayPayment, PaymentDraft, VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

# Paystack transaction status -> normalized status
_STATUS_MAP = {
    "success": VerificationStatus.SUCCESS,
    "failed": VerificationStatus.FAIL,
    "abandoned": VerificationStatus.FAIL,
    "reversed": VerificationStatus.FAIL,
}

CHANNELS = ["card", "bank", "ussd", "qr", "mobile_money", "bank_transfer"]


def to_minor_units(amount) -> int:
    return int((Decimal(str(amount)) * 100).to_integral_value())


def placeholder_email(identifier: str) -> str:
    """Paystack requires an email; chat customers only give us a phone/chat id."""
    digits = re.sub(r"\D", "", identifier) or "customer"
    return f"{digits}@customers.foodbot.local"


class PaystackGateway:
    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
            response.raise_for_status()
            body = response.json()
        except requests.Timeout as e:
            logger.warning(f"[Paystack] Timeout on {method} {path}")
            raise GatewayError(f"timeout calling {path}") from e
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[Paystack] {method} {path} failed: {type(e).__name__}: {e}")
            raise GatewayError(f"request to {path} failed") from e

        if not body.get("status"):
            logger.error(f"[Paystack] {path} rejected: {body.get('message')}")
            raise GatewayError(f"provider rejected {path}: {body.get('message')}")
        return body.get("data") or {}

    def create_payment(self, draft: PaymentDraft) -> GatewayPayment:
        payload = {
            "email": placeholder_email(draft.customer_identifier),
            "amount": to_minor_units(draft.total_amount),
            "reference": draft.reference,
            "currency": settings.CURRENCY,
            "callback_url": f"{settings.PUBLIC_BASE_URL.rstrip('/')}/payments/callback",
            "metadata": {
                "order_number": draft.order_number,
                "customer_phone": draft.customer_identifier,
                "customer_name": draft.customer_name or "Customer",
            },
            "channels": CHANNELS,
        }
        data = self._request("POST", "/transaction/initialize", json=payload)
        if not data.get("authorization_url"):
            raise GatewayError("initialize response missing authorization_url")
        logger.info(f"[Paystack] Initialized {draft.reference} for {draft.order_number}")
        return GatewayPayment(pay_url=data["authorization_url"], gateway_reference=data.get("access_code"))

    def verify_payment(self, reference: str) -> VerificationResult:
        data = self._request("GET", f"/transaction/verify/{reference}")
        status = _STATUS_MAP.get(str(data.get("status", "")).lower(), VerificationStatus.PENDING)
        logger.info(f"[Paystack] Verify {reference}: {data.get('status')} -> {status.value}")
        return VerificationResult(status=status, raw=data)

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        if not signature or not self.secret_key:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)


def payment_details_from(raw: dict) -> dict:
    """Channel / transaction id / card last4 from a verify or webhook payload."""
    authorization = raw.get("authorization") or {}
    return {
        "channel": raw.get("channel"),
        "transaction_id": raw.get("id"),
        "paid_at": raw.get("paid_at") or raw.get("paidAt"),
        "card_last4": authorization.get("last4"),
        "bank": authorization.get("bank"),
    }


def build_gateway() -> PaystackGateway | None:
    """The configured gateway, or None for cash-on-delivery."""
    if settings.gateway_enabled:
        return PaystackGateway()
    if settings.PAYMENT_PROVIDER == "paystack":
        logger.warning("[Paystack] PAYSTACK_SECRET_KEY not set, falling back to cash on delivery")
    return None
