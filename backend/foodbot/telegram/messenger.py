"""
Telegram rendering of the three outbound shapes.

- TextMessage   -> plain message
- ButtonMessage -> inline keyboard, one button per row, callback_data = label
- ListMessage   -> rows listed in the text + one inline button per row,
                   callback_data = row id ("food_12", "cat_3")

Labels arrive already truncated by foodbot.agent.outbound.
"""
import asyncio
import logging
from typing import List

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, error

from foodbot.agent.outbound import ButtonMessage, ListMessage, ListSection, OutboundMessage, TextMessage
from foodbot.core.config import settings

logger = logging.getLogger(__name__)


def button_keyboard(buttons: List[str]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton(label, callback_data=label)] for label in buttons])


def list_keyboard(sections: List[ListSection]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(row.title, callback_data=row.id)]
        for section in sections
        for row in section.rows
    ])


def list_text(text: str, sections: List[ListSection]) -> str:
    parts = [text]
    for section in sections:
        parts.append(f"\n*{section.title}*")
        for row in section.rows:
            parts.append(f"• {row.title} - {row.description}" if row.description else f"• {row.title}")
    return "\n".join(parts)


async def _send(bot: Bot, chat_id: str, text: str, reply_markup=None) -> None:
    try:
        await bot.send_message(chat_id=int(chat_id), text=text, parse_mode="Markdown", reply_markup=reply_markup)
    except error.BadRequest as e:
        # Unbalanced markdown in catalog text; send it plain
        logger.warning(f"[Telegram] Markdown rejected for {chat_id} ({e}), resending as plain text")
        await bot.send_message(chat_id=int(chat_id), text=text, reply_markup=reply_markup)


async def render(bot: Bot, chat_id: str, message: OutboundMessage) -> None:
    if isinstance(message, ButtonMessage):
        await _send(bot, chat_id, message.text, button_keyboard(message.buttons))
    elif isinstance(message, ListMessage):
        await _send(bot, chat_id, list_text(message.text, message.sections), list_keyboard(message.sections))
    elif isinstance(message, TextMessage):
        await _send(bot, chat_id, message.text)
    else:
        raise TypeError(f"Unsupported outbound message: {type(message).__name__}")


async def render_all(bot: Bot, chat_id: str, messages: List[OutboundMessage]) -> int:
    """Send in order on the bot's own loop. Failures are logged, never raised."""
    sent = 0
    for message in messages:
        try:
            await asyncio.wait_for(render(bot, chat_id, message), timeout=settings.SEND_TIMEOUT_SECONDS)
            sent += 1
        except Exception as e:
            logger.error(f"[Telegram] Failed to send to {chat_id}: {type(e).__name__}: {e}")
    return sent


class TelegramMessenger:
    """
    Messenger for code running outside the bot thread (HTTP routes, webhooks).
    Schedules sends on the bot's event loop and waits at most SEND_TIMEOUT_SECONDS.
    """

    def __init__(self, bot: Bot, loop: asyncio.AbstractEventLoop, timeout: float | None = None):
        self.bot = bot
        self.loop = loop
        self.timeout = timeout or settings.SEND_TIMEOUT_SECONDS

    def _run(self, message: OutboundMessage, to: str) -> None:
        future = asyncio.run_coroutine_threadsafe(render(self.bot, to, message), self.loop)
        future.result(timeout=self.timeout)

    def send_text(self, to: str, text: str) -> None:
        self._run(TextMessage(text), to)

    def send_buttons(self, to: str, text: str, buttons: List[str]) -> None:
        self._run(ButtonMessage.build(text, buttons), to)

    def send_list(self, to: str, text: str, sections: List[ListSection], button: str) -> None:
        self._run(ListMessage.build(text, sections, button), to)
