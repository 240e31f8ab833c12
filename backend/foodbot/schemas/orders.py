from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal


class OrderLineItem(BaseModel):
    food_id: int
    name: str
    quantity: int
    unit_price: Decimal
    special_instructions: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_identifier: str
    customer_name: Optional[str] = None
    line_items: List[OrderLineItem]
    total_amount: Decimal
    delivery_fee: Decimal
    delivery_address: Optional[str] = None
    status: str
    payment_method: str
    payment_reference: Optional[str] = None
    payment_status: str
    payment_details: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: str


class OrderStatusResponse(BaseModel):
    order: OrderResponse
    notified: bool
