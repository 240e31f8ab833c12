"""
Order: a finalized, fulfillment-bound purchase.

Written once at creation (cash checkout or paid PendingPayment promotion),
then only moved through status transitions by the admin surface.
payment_reference is unique but nullable: cash orders have none.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from foodbot.db.base import Base


class OrderStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    ALL = (PENDING, CONFIRMED, PREPARING, READY, OUT_FOR_DELIVERY, DELIVERED, CANCELLED)


class PaymentMethod:
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    PAYSTACK = "paystack"


class OrderPaymentStatus:
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(64), unique=True, nullable=False, index=True)
    customer_identifier = Column(String(64), nullable=False, index=True)
    customer_name = Column(String(255), nullable=True)
    # [{"food_id", "name", "quantity", "unit_price", "special_instructions"}]
    line_items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Numeric(12, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_address = Column(Text, nullable=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING, index=True)
    payment_method = Column(String(32), nullable=False, default=PaymentMethod.CASH)
    payment_reference = Column(String(64), unique=True, nullable=True)
    payment_status = Column(String(32), nullable=False, default=OrderPaymentStatus.PENDING)
    payment_details = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Order {self.order_number} status={self.status}>"
