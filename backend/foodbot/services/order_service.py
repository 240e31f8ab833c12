"""Order reads and status transitions for the admin surface."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from foodbot.agent import messages as msg
from foodbot.core.exceptions import NotFoundError, UserInputError
from foodbot.models.catalog import Restaurant
from foodbot.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)

# Allowed forward moves; cancelled is reachable from anything not yet delivered
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def list_orders(
    db: Session,
    status: str | None = None,
    phone: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Order]:
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if phone:
        query = query.filter(Order.customer_identifier == phone)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()


def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def update_order_status(db: Session, order_id: int, status: str) -> Order:
    """
    Move an order to `status`. Raises UserInputError for an unknown status or
    a move the fulfilment flow does not allow. Caller commits.
    """
    if status not in OrderStatus.ALL:
        raise UserInputError(f"unknown order status {status!r}", user_message=f"Invalid status: {status}")

    order = get_order(db, order_id)
    if order is None:
        raise NotFoundError(f"order {order_id} not found")

    if status == order.status:
        return order
    if status not in TRANSITIONS.get(order.status, set()):
        raise UserInputError(
            f"order {order.order_number}: {order.status} -> {status} not allowed",
            user_message=f"Cannot move order from {order.status} to {status}",
        )

    logger.info(f"[Orders] {order.order_number}: {order.status} -> {status}")
    order.status = status
    db.flush()
    return order


def status_notification(db: Session, order: Order) -> str | None:
    delivery_time = None
    if order.restaurant_id:
        restaurant = db.query(Restaurant).filter(Restaurant.id == order.restaurant_id).first()
        delivery_time = restaurant.delivery_time if restaurant else None
    return msg.order_status_update(order.order_number, order.status, delivery_time)
