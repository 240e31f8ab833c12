"""
Chat Session Model — persistent conversation state per customer.

One row per customer identifier (phone number or chat id). The conversation
engine never works on this row directly: the session store copies it into a
SessionState, the engine mutates that, and the store writes it back in one
versioned UPDATE.

Lifecycle:
    1. Created on the first inbound message (is_first_contact=True)
    2. Updated on every inbound message (last_activity_at)
    3. Deleted by the maintenance sweeper after SESSION_TTL_HOURS idle
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from foodbot.db.base import Base


class ChatSession(Base):
    """
    Schema:
        identifier: stable customer key (unique, immutable)
        current_step: conversation step (see foodbot.agent.conversation_state.Step)
        cart: JSON list of {"food_id", "quantity", "special_instructions"}
        search_result_ids: ids presented in the last list message
        version: optimistic concurrency counter (stale writes raise StaleDataError)
    """
    __tablename__ = "chat_sessions"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(64), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    is_first_contact = Column(Boolean, nullable=False, default=True)
    current_step = Column(String(32), nullable=False, default="initial")
    search_query = Column(String(255), nullable=True)
    selected_food_id = Column(Integer, nullable=True)
    search_result_ids = Column(JSON, nullable=False, default=list)
    cart = Column(JSON, nullable=False, default=list)
    pending_payment_reference = Column(String(64), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<ChatSession identifier={self.identifier} step={self.current_step}>"
