"""
Inbound message shape and structured selection decoding.

Transports (Telegram, the normalized webhook) build an InboundMessage once at
the boundary. Structured interaction ids are decoded here into a tagged
selection so handlers never re-parse "food_"/"cat_" prefixes.
"""
from dataclasses import dataclass
from typing import Optional, Union

FOOD_PREFIX = "food_"
CATEGORY_PREFIX = "cat_"


@dataclass(frozen=True)
class FoodSelection:
    food_id: int


@dataclass(frozen=True)
class CategorySelection:
    category_id: int


@dataclass(frozen=True)
class ReplySelection:
    """A quick-reply button; `text` is the normalized button label."""
    text: str


@dataclass(frozen=True)
class InvalidSelection:
    """A structured id we could not decode (e.g. 'food_abc')."""
    raw_id: str


Selection = Union[FoodSelection, CategorySelection, ReplySelection, InvalidSelection]


def _parse_id(raw_id: str, prefix: str) -> Optional[int]:
    value = raw_id[len(prefix):]
    return int(value) if value.isdigit() else None


def decode_selection(raw_id: str | None, label: str | None = None) -> Optional[Selection]:
    """
    Decode a structured interaction.

    Examples:
        decode_selection("food_12")             -> FoodSelection(12)
        decode_selection("cat_3")               -> CategorySelection(3)
        decode_selection("btn_0", "View Cart")  -> ReplySelection("view cart")
        decode_selection("food_x")              -> InvalidSelection("food_x")
    """
    if not raw_id and not label:
        return None

    raw_id = (raw_id or "").strip()

    if raw_id.startswith(FOOD_PREFIX):
        food_id = _parse_id(raw_id, FOOD_PREFIX)
        return FoodSelection(food_id) if food_id is not None else InvalidSelection(raw_id)

    if raw_id.startswith(CATEGORY_PREFIX):
        category_id = _parse_id(raw_id, CATEGORY_PREFIX)
        return CategorySelection(category_id) if category_id is not None else InvalidSelection(raw_id)

    text = " ".join((label or raw_id).lower().split())
    return ReplySelection(text)


def food_row_id(food_id: int) -> str:
    return f"{FOOD_PREFIX}{food_id}"


def category_row_id(category_id: int) -> str:
    return f"{CATEGORY_PREFIX}{category_id}"


@dataclass(frozen=True)
class InboundMessage:
    """
    Normalized inbound message.

    sender: stable customer identifier (phone number / chat id)
    text: message text, or the button label / row title for interactions
    selection: decoded structured interaction, None for free text
    """
    sender: str
    text: str
    selection: Optional[Selection] = None
    display_name: Optional[str] = None

    @property
    def is_structured(self) -> bool:
        return self.selection is not None
