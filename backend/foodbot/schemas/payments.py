from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal


class PaymentStatusResponse(BaseModel):
    reference: str
    gateway_status: str  # SUCCESS | FAIL | PENDING
    payment_status: str  # PendingPayment.payment_status after reconciliation
    order_number: Optional[str] = None


class WebhookAck(BaseModel):
    status: str = "ok"
    event: Optional[str] = None
    handled: bool = False
    order_number: Optional[str] = None


class PendingPaymentResponse(BaseModel):
    id: int
    reference: str
    order_number: str
    customer_identifier: str
    customer_name: Optional[str] = None
    line_items: List[dict[str, Any]]
    total_amount: Decimal
    delivery_address: Optional[str] = None
    payment_url: Optional[str] = None
    payment_status: str
    expires_at: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
