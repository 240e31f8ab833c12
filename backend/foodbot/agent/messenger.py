"""
Messaging capability the core sends through.

Sends happen after the unit of work has committed; a failed or timed-out
send is logged and never undoes a state change.
"""
import logging
from typing import Iterable, List, Protocol

from .outbound import ButtonMessage, ListMessage, ListSection, OutboundMessage, TextMessage

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    def send_text(self, to: str, text: str) -> None:
        ...

    def send_buttons(self, to: str, text: str, buttons: List[str]) -> None:
        ...

    def send_list(self, to: str, text: str, sections: List[ListSection], button: str) -> None:
        ...


def send_one(messenger: Messenger, to: str, message: OutboundMessage) -> None:
    if isinstance(message, ButtonMessage):
        messenger.send_buttons(to, message.text, message.buttons)
    elif isinstance(message, ListMessage):
        messenger.send_list(to, message.text, message.sections, message.button)
    elif isinstance(message, TextMessage):
        messenger.send_text(to, message.text)
    else:
        raise TypeError(f"Unsupported outbound message: {type(message).__name__}")


def deliver(messenger: Messenger, to: str, messages: Iterable[OutboundMessage]) -> int:
    """Send in order; returns how many went out. Failures are logged only."""
    sent = 0
    for message in messages:
        try:
            send_one(messenger, to, message)
            sent += 1
        except Exception as e:
            logger.error(f"[Messenger] Send to {to} failed: {type(e).__name__}: {e}", exc_info=True)
    return sent


class NullMessenger:
    """Used when no transport is running (e.g. bot disabled)."""

    def send_text(self, to: str, text: str) -> None:
        logger.info(f"[Messenger] No transport, dropping text to {to}")

    def send_buttons(self, to: str, text: str, buttons: List[str]) -> None:
        logger.info(f"[Messenger] No transport, dropping buttons to {to}")

    def send_list(self, to: str, text: str, sections: List[ListSection], button: str) -> None:
        logger.info(f"[Messenger] No transport, dropping list to {to}")
