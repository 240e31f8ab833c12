"""
Maintenance sweeper - background housekeeping.

Runs periodically alongside FastAPI:
1. Expires untouched PendingPayments past expires_at (pending -> expired)
2. Deletes chat sessions idle longer than SESSION_TTL_HOURS

Expired payments stay claimable: a charge that succeeds after expiry is
still promoted by the webhook.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.orm import Session

from foodbot.core.config import settings
from foodbot.core.timeutils import utcnow
from foodbot.db.session import SessionLocal
from foodbot.models.chat_session import ChatSession
from foodbot.services.payment_service import expire_stale_payments

logger = logging.getLogger(__name__)

# Let the server finish starting before the first sweep
INITIAL_DELAY_SECONDS = 10


@dataclass
class SweepResult:
    expired_payments: int = 0
    deleted_sessions: int = 0


def delete_idle_sessions(db: Session, now=None) -> int:
    now = now or utcnow()
    cutoff = now - timedelta(hours=settings.SESSION_TTL_HOURS)
    return (
        db.query(ChatSession)
        .filter(ChatSession.last_activity_at < cutoff)
        .delete(synchronize_session=False)
    )


def sweep(session_factory=SessionLocal, now=None) -> SweepResult:
    """One maintenance pass. Commits its own transaction."""
    now = now or utcnow()
    db = session_factory()
    try:
        result = SweepResult(
            expired_payments=expire_stale_payments(db, now),
            deleted_sessions=delete_idle_sessions(db, now),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    if result.expired_payments or result.deleted_sessions:
        logger.info(
            f"[Maintenance] Expired {result.expired_payments} payment(s), "
            f"deleted {result.deleted_sessions} idle session(s)"
        )
    else:
        logger.debug("[Maintenance] Nothing to clean up")
    return result


# ============================================================================
# BACKGROUND TASK - Runs in asyncio loop alongside FastAPI
# ============================================================================

_sweeper_task: asyncio.Task | None = None


async def _sweeper_loop(interval: int):
    logger.info(f"[Maintenance] Sweeper started. Interval: {interval}s")
    await asyncio.sleep(INITIAL_DELAY_SECONDS)

    while True:
        try:
            # DB work off the event loop
            await asyncio.to_thread(sweep)
        except Exception as e:
            logger.error(f"[Maintenance] Sweep failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


def start_sweeper(interval: int | None = None):
    """Start the background sweeper. Called from FastAPI lifespan."""
    global _sweeper_task
    if _sweeper_task is not None and not _sweeper_task.done():
        return
    _sweeper_task = asyncio.create_task(_sweeper_loop(interval or settings.MAINTENANCE_INTERVAL_SECONDS))


def stop_sweeper():
    """Stop the sweeper. Called from FastAPI shutdown."""
    global _sweeper_task
    if _sweeper_task is not None:
        _sweeper_task.cancel()
        _sweeper_task = None
        logger.info("[Maintenance] Sweeper stopped")
