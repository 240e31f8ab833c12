"""FastAPI dependencies: DB session, admin key, gateway and core processors.

SECURITY: admin routes require the X-Admin-Key header. With no ADMIN_API_KEY
configured every admin request is refused.
"""
import hmac
from typing import Generator, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from foodbot.agent.messenger import Messenger
from foodbot.agent.processor import MessageProcessor, PaymentEventProcessor
from foodbot.core.config import settings
from foodbot.core.exceptions import BusinessError
from foodbot.db.session import SessionLocal
from foodbot.payments.gateway import PaymentGateway
from foodbot.payments.paystack import build_gateway


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _token_matches(expected: str, provided: Optional[str]) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> None:
    if not _token_matches(settings.ADMIN_API_KEY, x_admin_key):
        raise BusinessError.unauthorized("bad or missing X-Admin-Key")


def require_webhook_token(x_webhook_token: Optional[str] = Header(default=None)) -> None:
    if not _token_matches(settings.INBOUND_WEBHOOK_TOKEN, x_webhook_token):
        raise BusinessError.unauthorized("bad or missing X-Webhook-Token")


def get_gateway() -> Optional[PaymentGateway]:
    return build_gateway()


def get_messenger() -> Messenger:
    from foodbot.telegram.bot import get_messenger as telegram_messenger

    return telegram_messenger()


def get_processor() -> MessageProcessor:
    return MessageProcessor()


def get_payment_events(messenger: Messenger = Depends(get_messenger)) -> PaymentEventProcessor:
    return PaymentEventProcessor(messenger=messenger)
