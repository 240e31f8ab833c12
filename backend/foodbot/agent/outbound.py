"""
Outbound message contracts.

The engine produces these values; a Messenger (Telegram, ...) renders them.
Truncation budgets are applied here, independent of the platform, so every
transport receives labels that already fit.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Union

ELLIPSIS = "..."

BUTTON_LABEL_BUDGET = 20
MAX_BUTTONS = 4
SECTION_TITLE_BUDGET = 24
ROW_TITLE_BUDGET = 24
ROW_DESCRIPTION_BUDGET = 72
MAX_LIST_ROWS = 10


def truncate(text: Optional[str], budget: int) -> str:
    """
    Cut text to at most `budget` characters, ending in ELLIPSIS when cut.

    truncate("Spicy Chicken Shawarma Deluxe", 24) -> "Spicy Chicken Shawarm..."
    """
    text = text or ""
    if len(text) <= budget:
        return text
    if budget <= len(ELLIPSIS):
        return ELLIPSIS[:budget]
    return text[: budget - len(ELLIPSIS)] + ELLIPSIS


@dataclass(frozen=True)
class TextMessage:
    text: str


@dataclass(frozen=True)
class ButtonMessage:
    text: str
    buttons: List[str]

    @classmethod
    def build(cls, text: str, buttons: List[str]) -> "ButtonMessage":
        return cls(text=text, buttons=[truncate(b, BUTTON_LABEL_BUDGET) for b in buttons[:MAX_BUTTONS]])


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str = ""


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: List[ListRow] = field(default_factory=list)


@dataclass(frozen=True)
class ListMessage:
    text: str
    sections: List[ListSection]
    button: str = "Choose Option"

    @classmethod
    def build(cls, text: str, sections: List[ListSection], button: str = "Choose Option") -> "ListMessage":
        processed = [
            ListSection(
                title=truncate(section.title, SECTION_TITLE_BUDGET),
                rows=[
                    ListRow(
                        id=row.id,
                        title=truncate(row.title, ROW_TITLE_BUDGET),
                        description=truncate(row.description, ROW_DESCRIPTION_BUDGET),
                    )
                    for row in section.rows[:MAX_LIST_ROWS]
                ],
            )
            for section in sections
        ]
        return cls(text=text, sections=processed, button=truncate(button, BUTTON_LABEL_BUDGET))

    @property
    def row_ids(self) -> List[str]:
        return [row.id for section in self.sections for row in section.rows]


OutboundMessage = Union[TextMessage, ButtonMessage, ListMessage]


@dataclass(frozen=True)
class Delivery:
    """An outbound message addressed to a customer."""
    to: str
    message: OutboundMessage
