"""
Session store: load-or-create ChatSession rows and copy them to/from SessionState.

Writes are versioned (ChatSession.version), so a concurrent writer that
slipped past the in-process lock makes the flush raise StaleDataError
instead of silently overwriting a step transition.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from foodbot.agent.conversation_state import Step
from foodbot.agent.session_state import CartLine, SessionState
from foodbot.core.timeutils import ensure_utc, utcnow
from foodbot.models.chat_session import ChatSession

logger = logging.getLogger(__name__)


def get_session(db: Session, identifier: str) -> Optional[ChatSession]:
    return db.query(ChatSession).filter(ChatSession.identifier == identifier).first()


def load_or_create(db: Session, identifier: str, display_name: str | None = None) -> Tuple[ChatSession, bool]:
    """
    Return (row, created). At most one row per identifier (unique index).
    """
    row = get_session(db, identifier)
    if row is not None:
        return row, False

    row = ChatSession(
        identifier=identifier,
        display_name=display_name,
        is_first_contact=True,
        current_step=Step.INITIAL.value,
        search_result_ids=[],
        cart=[],
        last_activity_at=utcnow(),
    )
    db.add(row)
    # A racing insert from another process fails here on the unique index;
    # the processor rolls back and re-runs the unit of work, which then finds it
    db.flush()

    logger.info(f"[SessionStore] New session for {identifier}")
    return row, True


def to_state(row: ChatSession) -> SessionState:
    return SessionState(
        identifier=row.identifier,
        display_name=row.display_name,
        is_first_contact=bool(row.is_first_contact),
        step=Step.parse(row.current_step),
        search_query=row.search_query,
        selected_food_id=row.selected_food_id,
        search_result_ids=list(row.search_result_ids or []),
        cart=[CartLine.from_dict(item) for item in (row.cart or [])],
        pending_payment_reference=row.pending_payment_reference,
        last_activity_at=ensure_utc(row.last_activity_at),
    )


def apply_state(row: ChatSession, state: SessionState) -> None:
    # Fresh lists so SQLAlchemy sees the JSON columns as changed
    row.display_name = state.display_name
    row.is_first_contact = state.is_first_contact
    row.current_step = state.step.value
    row.search_query = state.search_query
    row.selected_food_id = state.selected_food_id
    row.search_result_ids = list(state.search_result_ids)
    row.cart = [line.to_dict() for line in state.cart]
    row.pending_payment_reference = state.pending_payment_reference
    row.last_activity_at = state.last_activity_at or utcnow()


def delete_session(db: Session, identifier: str) -> bool:
    row = get_session(db, identifier)
    if row is None:
        return False
    db.delete(row)
    return True
