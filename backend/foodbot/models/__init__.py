from foodbot.models.catalog import Restaurant, Category, FoodItem
from foodbot.models.chat_session import ChatSession
from foodbot.models.pending_payment import PendingPayment, PendingPaymentStatus
from foodbot.models.order import Order, OrderStatus, PaymentMethod, OrderPaymentStatus

__all__ = [
    "Restaurant", "Category", "FoodItem", "ChatSession",
    "PendingPayment", "PendingPaymentStatus",
    "Order", "OrderStatus", "PaymentMethod", "OrderPaymentStatus",
]
