from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime


class ChatSessionResponse(BaseModel):
    id: int
    identifier: str
    display_name: Optional[str] = None
    is_first_contact: bool
    current_step: str
    search_query: Optional[str] = None
    selected_food_id: Optional[int] = None
    search_result_ids: List[int] = []
    cart: List[dict[str, Any]] = []
    pending_payment_reference: Optional[str] = None
    last_activity_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
