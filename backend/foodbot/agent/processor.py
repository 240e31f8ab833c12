"""
Message Processor - the shell around the conversation engine.

One inbound message = one unit of work:
    1. Take the per-identifier lock
    2. Load-or-create the session row, copy into a SessionState
    3. Run the engine (catalog reads, order/payment writes, no sends)
    4. Write the state back and COMMIT
    5. Release the lock, THEN send the collected messages

A stale versioned write or a unique-index race (another process got there
first) re-runs the whole unit of work; a gateway payment created by an
earlier attempt is reused, not created again. Anything unexpected rolls back and
the customer gets the generic retry message with their previous step intact.

Gateway payment events go through the same lock and commit-then-notify
sequence in PaymentEventProcessor.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from foodbot.core.config import settings
from foodbot.core.exceptions import GENERIC_RETRY_MESSAGE, PersistenceError
from foodbot.core.locks import KeyedLock, identifier_locks
from foodbot.db.session import SessionLocal
from foodbot.services import session_store
from foodbot.services.payment_service import (
    get_pending_payment,
    mark_payment_failed,
    promote_pending_payment,
    release_session_after_payment,
)
from . import messages as msg
from .engine import build_engine
from .messenger import Messenger, NullMessenger, deliver
from .outbound import OutboundMessage, TextMessage
from .selections import InboundMessage

logger = logging.getLogger(__name__)


def _run_unit_of_work(session_factory, work: Callable, retries: int, label: str):
    """
    Run work(db) and commit, retrying the whole unit on a stale versioned
    write or a unique-index race (both mean another writer got there first).

    Raises PersistenceError when the retries run out or the database fails.
    """
    attempts = max(1, retries)
    for attempt in range(1, attempts + 1):
        db = session_factory()
        try:
            result = work(db)
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as e:
            db.rollback()
            logger.warning(f"[Processor] {label}: write conflict {type(e).__name__} (attempt {attempt}/{attempts})")
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"{label}: {type(e).__name__}: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
    raise PersistenceError(f"{label}: gave up after {attempts} conflicting writes")


class MessageProcessor:
    def __init__(
        self,
        session_factory=SessionLocal,
        gateway_factory: Callable = None,
        messenger: Messenger | None = None,
        locks: KeyedLock = identifier_locks,
        retries: int | None = None,
    ):
        self.session_factory = session_factory
        self.gateway_factory = gateway_factory or _default_gateway
        self.messenger = messenger or NullMessenger()
        self.locks = locks
        self.retries = retries if retries is not None else settings.SESSION_WRITE_RETRIES

    def process(self, inbound: InboundMessage) -> List[OutboundMessage]:
        """Apply one inbound message and return the replies, committed but unsent."""
        sender = (inbound.sender or "").strip()
        if not sender:
            raise ValueError("inbound message without sender")

        # Shared by every attempt of this message so a retry never opens a second charge
        created_payments = {}
        with self.locks.hold(sender):
            try:
                return _run_unit_of_work(
                    self.session_factory,
                    lambda db: self._apply(db, inbound, created_payments),
                    self.retries,
                    label=sender,
                )
            except PersistenceError as e:
                logger.error(f"[Processor] {sender}: {e}", exc_info=True)
            except Exception as e:
                logger.error(f"[Processor] {sender}: unexpected {type(e).__name__}: {e}", exc_info=True)
        return [TextMessage(GENERIC_RETRY_MESSAGE)]

    def handle(self, inbound: InboundMessage) -> List[OutboundMessage]:
        """process() then send through the configured messenger."""
        replies = self.process(inbound)
        deliver(self.messenger, inbound.sender, replies)
        return replies

    def _apply(self, db, inbound: InboundMessage, created_payments: dict) -> List[OutboundMessage]:
        row, created = session_store.load_or_create(db, inbound.sender, inbound.display_name)
        state = session_store.to_state(row)
        engine = build_engine(db, self.gateway_factory(), created_payments=created_payments)
        result = engine.handle(state, inbound)
        session_store.apply_state(row, state)
        if created:
            logger.info(f"[Processor] {inbound.sender}: first contact")
        return result.messages


@dataclass
class PaymentEventResult:
    reference: str
    handled: bool
    order_number: Optional[str] = None
    created: bool = False


class PaymentEventProcessor:
    """Applies gateway webhook / callback outcomes under the customer's lock."""

    def __init__(
        self,
        session_factory=SessionLocal,
        messenger: Messenger | None = None,
        locks: KeyedLock = identifier_locks,
        retries: int | None = None,
    ):
        self.session_factory = session_factory
        self.messenger = messenger or NullMessenger()
        self.locks = locks
        self.retries = retries if retries is not None else settings.SESSION_WRITE_RETRIES

    def _customer_for(self, reference: str) -> Optional[str]:
        db = self.session_factory()
        try:
            pending = get_pending_payment(db, reference)
            return pending.customer_identifier if pending else None
        finally:
            db.close()

    def settle_success(self, reference: str, details: dict | None = None) -> PaymentEventResult:
        identifier = self._customer_for(reference)
        if identifier is None:
            logger.warning(f"[Webhook] Unknown reference {reference}, ignoring")
            return PaymentEventResult(reference=reference, handled=False)

        def work(db):
            promotion = promote_pending_payment(db, reference, details)
            if promotion.order is not None:
                release_session_after_payment(db, identifier, reference)
            return (
                promotion.created,
                promotion.order.order_number if promotion.order else None,
                msg.order_confirmed(promotion.order, paid=True) if promotion.created else None,
            )

        with self.locks.hold(identifier):
            created, order_number, confirmation = _run_unit_of_work(
                self.session_factory, work, self.retries, label=f"promote {reference}"
            )

        if confirmation:
            deliver(self.messenger, identifier, [TextMessage(confirmation)])
        return PaymentEventResult(reference=reference, handled=order_number is not None, order_number=order_number, created=created)

    def settle_failure(self, reference: str) -> PaymentEventResult:
        identifier = self._customer_for(reference)
        if identifier is None:
            logger.warning(f"[Webhook] Unknown reference {reference}, ignoring")
            return PaymentEventResult(reference=reference, handled=False)

        def work(db):
            changed = mark_payment_failed(db, reference)
            pending = get_pending_payment(db, reference)
            return changed, pending.order_number

        with self.locks.hold(identifier):
            changed, order_number = _run_unit_of_work(
                self.session_factory, work, self.retries, label=f"fail {reference}"
            )

        if changed:
            deliver(self.messenger, identifier, [TextMessage(msg.payment_failed_notice(order_number))])
        return PaymentEventResult(reference=reference, handled=changed, order_number=order_number)


def _default_gateway():
    from foodbot.payments.paystack import build_gateway

    return build_gateway()
