from pydantic import BaseModel, Field
from typing import List, Optional

from foodbot.agent.outbound import ButtonMessage, ListMessage, OutboundMessage


class InboundPayload(BaseModel):
    """Already-normalized inbound message from a non-Telegram channel."""
    sender: str = Field(..., min_length=1, max_length=64)
    text: str = ""
    selection_id: Optional[str] = None
    display_name: Optional[str] = None


class ListRowOut(BaseModel):
    id: str
    title: str
    description: str = ""


class ListSectionOut(BaseModel):
    title: str
    rows: List[ListRowOut] = []


class OutboundReply(BaseModel):
    type: str  # text | buttons | list
    text: str
    buttons: List[str] = []
    sections: List[ListSectionOut] = []
    button: Optional[str] = None

    @classmethod
    def from_message(cls, message: OutboundMessage) -> "OutboundReply":
        if isinstance(message, ButtonMessage):
            return cls(type="buttons", text=message.text, buttons=list(message.buttons))
        if isinstance(message, ListMessage):
            return cls(
                type="list",
                text=message.text,
                button=message.button,
                sections=[
                    ListSectionOut(
                        title=section.title,
                        rows=[ListRowOut(id=row.id, title=row.title, description=row.description) for row in section.rows],
                    )
                    for section in message.sections
                ],
            )
        return cls(type="text", text=message.text)


class InboundResponse(BaseModel):
    sender: str
    replies: List[OutboundReply]
