"""
PendingPayment: one checkout attempt awaiting gateway confirmation.

The line items are an immutable snapshot of the cart (with unit prices)
taken when the delivery address was accepted, so catalog price changes
mid-payment do not affect what the customer is charged.

Status flow:
    pending -> processing (claimed for promotion) -> paid
    pending -> failed | cancelled | expired
Promotion to an Order happens at most once per reference.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from foodbot.db.base import Base


class PendingPaymentStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    # Statuses a successful charge may still be promoted from
    CLAIMABLE = (PENDING, EXPIRED)
    TERMINAL = (PAID, FAILED, CANCELLED)


class PendingPayment(Base):
    __tablename__ = "pending_payments"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(64), unique=True, nullable=False, index=True)
    order_number = Column(String(64), nullable=False)
    customer_identifier = Column(String(64), nullable=False, index=True)
    customer_name = Column(String(255), nullable=True)
    # [{"food_id", "name", "quantity", "unit_price", "special_instructions"}]
    line_items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Numeric(12, 2), nullable=False)
    delivery_address = Column(Text, nullable=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="SET NULL"), nullable=True)
    payment_url = Column(String(512), nullable=True)
    gateway_reference = Column(String(128), nullable=True)
    payment_status = Column(String(32), nullable=False, default=PendingPaymentStatus.PENDING, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<PendingPayment reference={self.reference} status={self.payment_status}>"
