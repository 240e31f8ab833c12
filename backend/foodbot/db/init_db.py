"""Create all tables. Run on app startup."""
import logging

from foodbot.db.base import Base
from foodbot.db.session import engine
from foodbot.models import catalog, chat_session, pending_payment, order  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
    logger.info("[DB] Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))
