"""Admin access to chat sessions."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from foodbot.api.deps import get_db, require_admin
from foodbot.core.exceptions import BusinessError
from foodbot.core.locks import identifier_locks
from foodbot.models.chat_session import ChatSession
from foodbot.schemas.sessions import ChatSessionResponse
from foodbot.services import session_store

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[ChatSessionResponse])
def list_sessions(step: Optional[str] = None, limit: int = 50, offset: int = 0, db: Session = Depends(get_db)):
    query = db.query(ChatSession)
    if step:
        query = query.filter(ChatSession.current_step == step)
    return query.order_by(ChatSession.last_activity_at.desc()).offset(offset).limit(min(limit, 200)).all()


@router.get("/{identifier}", response_model=ChatSessionResponse)
def get_session(identifier: str, db: Session = Depends(get_db)):
    row = session_store.get_session(db, identifier)
    if not row:
        raise BusinessError.not_found("Session")
    return row


@router.delete("/{identifier}")
def delete_session(identifier: str, db: Session = Depends(get_db)):
    with identifier_locks.hold(identifier):
        if not session_store.delete_session(db, identifier):
            raise BusinessError.not_found("Session")
        db.commit()
    return {"deleted": identifier}
