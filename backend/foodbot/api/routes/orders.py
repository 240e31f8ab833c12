"""Admin order access and status transitions with customer notification."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from foodbot.agent.messenger import Messenger, deliver
from foodbot.agent.outbound import TextMessage
from foodbot.api.deps import get_db, get_messenger, require_admin
from foodbot.core.exceptions import BusinessError, NotFoundError, UserInputError
from foodbot.schemas.orders import OrderResponse, OrderStatusResponse, OrderStatusUpdate
from foodbot.services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[OrderResponse])
def list_orders(
    status: Optional[str] = None,
    phone: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return order_service.list_orders(db, status=status, phone=phone, limit=min(limit, 200), offset=offset)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db)):
    order = order_service.get_order(db, order_id)
    if not order:
        raise BusinessError.not_found("Order")
    return order


@router.patch("/{order_id}/status", response_model=OrderStatusResponse)
def update_status(
    order_id: int,
    body: OrderStatusUpdate,
    db: Session = Depends(get_db),
    messenger: Messenger = Depends(get_messenger),
):
    try:
        order = order_service.update_order_status(db, order_id, body.status)
        text = order_service.status_notification(db, order)
        db.commit()
    except NotFoundError:
        db.rollback()
        raise BusinessError.not_found("Order")
    except UserInputError as e:
        db.rollback()
        raise BusinessError.bad_request(e.user_message)
    db.refresh(order)

    # Status is committed; a failed notification is only logged
    notified = bool(text) and deliver(messenger, order.customer_identifier, [TextMessage(text)]) > 0
    return OrderStatusResponse(order=order, notified=notified)
