"""
Cart & totals.

Quantities are validated per add (1..MAX_QUANTITY_PER_ADD). Adding the same
food again merges into one line; the merged quantity is only capped when
MAX_LINE_QUANTITY is configured.

Prices are never cached on cart lines: every render and checkout re-reads
the catalog, so a price change between add-to-cart and checkout shows up.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from foodbot.core.config import settings
from foodbot.core.exceptions import UserInputError
from .session_state import CartLine, SessionState

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount) -> str:
    """₦1500 -> '₦1,500', ₦1500.5 -> '₦1,500.50'"""
    amount = to_money(amount)
    if amount == amount.to_integral_value():
        return f"{settings.CURRENCY_SYMBOL}{int(amount):,}"
    return f"{settings.CURRENCY_SYMBOL}{amount:,.2f}"


def add_to_cart(
    state: SessionState,
    food_id: int,
    quantity,
    max_per_add: int | None = None,
    max_line_quantity: Optional[int] = None,
) -> CartLine:
    """
    Merge `quantity` of `food_id` into the cart.

    Raises UserInputError (cart untouched) when quantity is not an integer
    in 1..max_per_add, or when a configured line cap would be exceeded.
    """
    max_per_add = max_per_add if max_per_add is not None else settings.MAX_QUANTITY_PER_ADD
    if max_line_quantity is None:
        max_line_quantity = settings.MAX_LINE_QUANTITY

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise UserInputError(
            f"non-integer quantity {quantity!r}",
            user_message=f"Please enter a valid quantity (1-{max_per_add}).",
        )
    if quantity < 1:
        raise UserInputError(
            f"quantity below range: {quantity}",
            user_message=f"Please enter a valid quantity (1-{max_per_add}).",
        )
    if quantity > max_per_add:
        raise UserInputError(
            f"quantity above range: {quantity}",
            user_message=(
                f"Maximum quantity is {max_per_add} items per order. "
                "Please enter a smaller number."
            ),
        )

    line = state.cart_line(food_id)
    if line is not None:
        combined = line.quantity + quantity
        if max_line_quantity is not None and combined > max_line_quantity:
            raise UserInputError(
                f"line cap exceeded: {combined} > {max_line_quantity}",
                user_message=(
                    f"You already have {line.quantity} of this in your cart. "
                    f"The limit is {max_line_quantity} per item."
                ),
            )
        line.quantity = combined
        logger.info(f"[Cart] {state.identifier}: merged food_id={food_id} -> qty={combined}")
        return line

    line = CartLine(food_id=food_id, quantity=quantity)
    state.cart.append(line)
    logger.info(f"[Cart] {state.identifier}: added food_id={food_id} qty={quantity}")
    return line


@dataclass
class PricedLine:
    food_id: int
    name: str
    restaurant_name: str
    restaurant_id: Optional[int]
    quantity: int
    unit_price: Decimal
    special_instructions: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def snapshot(self) -> dict:
        """JSON-safe line item for PendingPayment/Order."""
        return {
            "food_id": self.food_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price),
            "special_instructions": self.special_instructions,
        }


@dataclass
class CartSummary:
    lines: List[PricedLine] = field(default_factory=list)
    missing_food_ids: List[int] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return to_money(sum((line.subtotal for line in self.lines), Decimal("0")))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def restaurant_id(self) -> Optional[int]:
        return self.lines[0].restaurant_id if self.lines else None

    def snapshot(self) -> list:
        return [line.snapshot() for line in self.lines]


def price_cart(catalog, state: SessionState) -> CartSummary:
    """
    Price every cart line from the current catalog.

    Lines whose food is gone or unavailable are reported in
    missing_food_ids and dropped from the session cart.
    """
    foods = catalog.get_foods([line.food_id for line in state.cart])
    summary = CartSummary()
    kept: List[CartLine] = []

    for line in state.cart:
        food = foods.get(line.food_id)
        if food is None:
            summary.missing_food_ids.append(line.food_id)
            continue
        kept.append(line)
        summary.lines.append(PricedLine(
            food_id=food.id,
            name=food.name,
            restaurant_name=food.restaurant.name if food.restaurant else "",
            restaurant_id=food.restaurant_id,
            quantity=line.quantity,
            unit_price=to_money(food.price),
            special_instructions=line.special_instructions,
        ))

    if summary.missing_food_ids:
        logger.warning(
            f"[Cart] {state.identifier}: dropping unavailable items {summary.missing_food_ids}"
        )
        state.cart = kept

    return summary
