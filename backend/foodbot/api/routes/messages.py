"""
Normalized inbound messages from non-Telegram channels.

The caller has already verified its own platform webhook and flattened the
payload to {sender, text, selection_id?}; replies come back in the response.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from foodbot.agent.processor import MessageProcessor
from foodbot.agent.selections import InboundMessage, decode_selection
from foodbot.api.deps import get_processor, require_webhook_token
from foodbot.schemas.messages import InboundPayload, InboundResponse, OutboundReply

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/messages", response_model=InboundResponse, dependencies=[Depends(require_webhook_token)])
async def receive_message(payload: InboundPayload, processor: MessageProcessor = Depends(get_processor)):
    inbound = InboundMessage(
        sender=payload.sender.strip(),
        text=payload.text,
        selection=decode_selection(payload.selection_id, payload.text) if payload.selection_id else None,
        display_name=payload.display_name,
    )
    # Sync core (locks + SQLAlchemy) off the event loop
    replies = await run_in_threadpool(processor.process, inbound)
    return InboundResponse(sender=inbound.sender, replies=[OutboundReply.from_message(m) for m in replies])
