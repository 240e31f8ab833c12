"""Telegram bot: polling in a background thread next to FastAPI."""
import asyncio
import logging
import threading
from typing import Optional

from telegram import error
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from foodbot.agent.messenger import Messenger, NullMessenger
from foodbot.core.config import settings
from .handlers import COMMAND_TEXT, handle_callback, handle_command, handle_message
from .messenger import TelegramMessenger

logger = logging.getLogger(__name__)

_bot_app: Optional[Application] = None
_bot_loop: Optional[asyncio.AbstractEventLoop] = None
_ready = threading.Event()


async def _start_polling_with_retry(app: Application, max_retries=3, initial_backoff=2) -> bool:
    for attempt in range(max_retries):
        try:
            logger.info(f"[Telegram] Starting polling (attempt {attempt + 1}/{max_retries})...")
            await app.updater.start_polling(drop_pending_updates=True)
            logger.info("[Telegram] Polling started")
            return True
        except error.Conflict as e:
            if attempt < max_retries - 1:
                backoff = initial_backoff * (2 ** attempt)
                logger.warning(f"[Telegram] Conflict detected: {e}. Retrying in {backoff}s")
                await asyncio.sleep(backoff)
            else:
                logger.error(f"[Telegram] Failed after {max_retries} retries. Bot disabled. Error: {e}")
                return False
        except Exception as e:
            logger.error(f"[Telegram] Unexpected polling error: {e}", exc_info=True)
            return False
    return False


def build_application(token: str) -> Application:
    app = Application.builder().token(token).build()
    app.add_handler(CommandHandler(list(COMMAND_TEXT), handle_command))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    return app


def _run_bot():
    global _bot_app, _bot_loop
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _bot_loop = loop

    try:
        _bot_app = build_application(settings.TELEGRAM_BOT_TOKEN)
        loop.run_until_complete(_bot_app.initialize())
        loop.run_until_complete(_bot_app.start())
        if not loop.run_until_complete(_start_polling_with_retry(_bot_app)):
            return
        _ready.set()
        loop.run_forever()
    except Exception as e:
        logger.error(f"[Telegram] Bot error: {e}", exc_info=True)
    finally:
        _ready.clear()
        try:
            if _bot_app:
                if _bot_app.updater and _bot_app.updater.running:
                    loop.run_until_complete(_bot_app.updater.stop())
                if _bot_app.running:
                    loop.run_until_complete(_bot_app.stop())
                loop.run_until_complete(_bot_app.shutdown())
        except Exception as e:
            logger.warning(f"[Telegram] Shutdown error: {e}")
        _bot_app = None
        _bot_loop = None
        loop.close()


def start_bot_background():
    if not settings.TELEGRAM_BOT_TOKEN:
        return
    t = threading.Thread(target=_run_bot, name="telegram-bot", daemon=True)
    t.start()


def stop_bot_background():
    """Stop polling. Called on FastAPI shutdown."""
    if _bot_loop is not None and _bot_loop.is_running():
        _bot_loop.call_soon_threadsafe(_bot_loop.stop)


def get_messenger() -> Messenger:
    """Messenger for notifications from outside the bot thread."""
    if _bot_app is not None and _bot_loop is not None and _ready.is_set():
        return TelegramMessenger(_bot_app.bot, _bot_loop)
    return NullMessenger()
