"""
Payment Gateway capability.

The conversation core only needs three things from a gateway: create a
payment for a draft, verify a reference, and check webhook signatures.
Adapters raise GatewayError for any transport or provider failure.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol


class VerificationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"
    PENDING = "PENDING"


@dataclass(frozen=True)
class PaymentDraft:
    reference: str
    order_number: str
    customer_identifier: str
    total_amount: Decimal
    customer_name: Optional[str] = None


@dataclass(frozen=True)
class GatewayPayment:
    pay_url: str
    gateway_reference: Optional[str] = None


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    raw: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == VerificationStatus.SUCCESS


class PaymentGateway(Protocol):
    def create_payment(self, draft: PaymentDraft) -> GatewayPayment:
        ...

    def verify_payment(self, reference: str) -> VerificationResult:
        ...

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> bool:
        ...
