"""
In-memory view of a chat session, mutated by the engine.

Step changes go through move_to() so the field invariants hold everywhere:
- selected_food_id is only set while ADDING_TO_CART
- pending_payment_reference is only set while AWAITING_PAYMENT
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .conversation_state import Step


@dataclass
class CartLine:
    food_id: int
    quantity: int
    special_instructions: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "food_id": self.food_id,
            "quantity": self.quantity,
            "special_instructions": self.special_instructions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        return cls(
            food_id=int(data["food_id"]),
            quantity=int(data["quantity"]),
            special_instructions=data.get("special_instructions"),
        )


@dataclass
class SessionState:
    identifier: str
    display_name: Optional[str] = None
    is_first_contact: bool = True
    step: Step = Step.INITIAL
    search_query: Optional[str] = None
    selected_food_id: Optional[int] = None
    search_result_ids: List[int] = field(default_factory=list)
    cart: List[CartLine] = field(default_factory=list)
    pending_payment_reference: Optional[str] = None
    last_activity_at: Optional[datetime] = None

    def move_to(self, step: Step) -> None:
        if step != Step.ADDING_TO_CART:
            self.selected_food_id = None
        if step != Step.AWAITING_PAYMENT:
            self.pending_payment_reference = None
        self.step = step

    def select_food(self, food_id: int) -> None:
        self.move_to(Step.ADDING_TO_CART)
        self.selected_food_id = food_id

    def await_payment(self, reference: str) -> None:
        self.move_to(Step.AWAITING_PAYMENT)
        self.pending_payment_reference = reference

    def reset(self) -> None:
        """Global escape hatch: empty cart, selection, search and pending payment."""
        self.cart = []
        self.search_query = None
        self.search_result_ids = []
        self.move_to(Step.INITIAL)

    def clear_cart(self) -> None:
        self.cart = []

    @property
    def cart_is_empty(self) -> bool:
        return not self.cart

    def cart_line(self, food_id: int) -> Optional[CartLine]:
        for line in self.cart:
            if line.food_id == food_id:
                return line
        return None
