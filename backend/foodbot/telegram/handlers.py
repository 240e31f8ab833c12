"""
Telegram handlers: normalize updates into InboundMessage and run the core.

The conversation core is synchronous (SQLAlchemy); it runs in a worker
thread so the bot's event loop keeps serving other chats. Replies are sent
after the processor has committed.
"""
import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from foodbot.agent.processor import MessageProcessor
from foodbot.agent.selections import InboundMessage, decode_selection
from .messenger import render_all

logger = logging.getLogger(__name__)

# /command -> text the core understands
COMMAND_TEXT = {
    "start": "hello",
    "help": "help",
    "menu": "browse menu",
    "cart": "view cart",
    "reset": "reset",
}

_processor: Optional[MessageProcessor] = None


def get_processor() -> MessageProcessor:
    global _processor
    if _processor is None:
        _processor = MessageProcessor()
    return _processor


def _display_name(update: Update) -> Optional[str]:
    user = update.effective_user
    if user is None:
        return None
    return user.full_name or user.username


def inbound_from_text(update: Update) -> Optional[InboundMessage]:
    message = update.effective_message
    if message is None or not message.text:
        return None
    return InboundMessage(
        sender=str(update.effective_chat.id),
        text=message.text,
        display_name=_display_name(update),
    )


def inbound_from_callback(update: Update) -> Optional[InboundMessage]:
    query = update.callback_query
    if query is None or not query.data:
        return None
    return InboundMessage(
        sender=str(update.effective_chat.id),
        text=query.data,
        selection=decode_selection(query.data),
        display_name=_display_name(update),
    )


def inbound_from_command(update: Update) -> Optional[InboundMessage]:
    message = update.effective_message
    if message is None or not message.text:
        return None
    command = message.text.split()[0].lstrip("/").split("@")[0].lower()
    text = COMMAND_TEXT.get(command)
    if text is None:
        return None
    return InboundMessage(sender=str(update.effective_chat.id), text=text, display_name=_display_name(update))


async def _run(context: ContextTypes.DEFAULT_TYPE, inbound: InboundMessage) -> None:
    replies = await asyncio.to_thread(get_processor().process, inbound)
    await render_all(context.bot, inbound.sender, replies)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    inbound = inbound_from_text(update)
    if inbound is None:
        return
    logger.info(f"[Telegram] Message from {inbound.sender}: {inbound.text[:60]!r}")
    await _run(context, inbound)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    # Stop the client-side spinner first
    await query.answer()
    inbound = inbound_from_callback(update)
    if inbound is None:
        return
    logger.info(f"[Telegram] Selection from {inbound.sender}: {inbound.text!r}")
    await _run(context, inbound)


async def handle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    inbound = inbound_from_command(update)
    if inbound is None:
        return
    await _run(context, inbound)
