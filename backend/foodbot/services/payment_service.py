"""
Order finalizer: checkout, payment confirmation and promotion.

PROMOTION RULE (the one that matters):
A PendingPayment becomes an Order at most once. Every path (user "I've paid",
gateway webhook, status lookup) goes through promote_pending_payment(), which
claims the row with a conditional UPDATE before creating the Order. A second
caller finds nothing to claim and gets the existing Order back. The unique
Order.payment_reference index backs this up at the database level.

Nothing here commits; the caller owns the unit of work.
"""
import json
import logging
import random
import time
import uuid
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from foodbot.agent.cart import CartSummary
from foodbot.agent.conversation_state import Step
from foodbot.agent.session_state import SessionState
from foodbot.core.config import settings
from foodbot.core.exceptions import GatewayError, NotFoundError
from foodbot.core.timeutils import ensure_utc, utcnow
from foodbot.models.order import Order, OrderPaymentStatus, OrderStatus, PaymentMethod
from foodbot.models.pending_payment import PendingPayment, PendingPaymentStatus
from foodbot.payments.gateway import PaymentDraft, PaymentGateway, VerificationStatus
from foodbot.payments.paystack import payment_details_from
from foodbot.services import session_store

logger = logging.getLogger(__name__)


def generate_order_number() -> str:
    """ORD + epoch millis + 3 random digits, e.g. ORD1718000000000123"""
    return f"ORD{int(time.time() * 1000)}{random.randint(0, 999):03d}"


def generate_payment_reference() -> str:
    return f"FB-{uuid.uuid4().hex[:20].upper()}"


def get_pending_payment(db: Session, reference: str) -> Optional[PendingPayment]:
    return db.query(PendingPayment).filter(PendingPayment.reference == reference).first()


def find_order_by_reference(db: Session, reference: str) -> Optional[Order]:
    return db.query(Order).filter(Order.payment_reference == reference).first()


def is_expired(pending: PendingPayment, now=None) -> bool:
    now = now or utcnow()
    return ensure_utc(pending.expires_at) <= now


# ==============================================================================
# PROMOTION
# ==============================================================================

@dataclass
class PromotionResult:
    order: Optional[Order]
    created: bool


def promote_pending_payment(db: Session, reference: str, details: dict | None = None) -> PromotionResult:
    """
    Turn a paid PendingPayment into an Order, exactly once.

    Returns (order, created=True) for the caller that won the claim,
    (existing order, created=False) for everyone after it, and
    (None, False) when the payment is in a status that cannot be promoted.
    Raises NotFoundError for an unknown reference.
    """
    claimed = (
        db.query(PendingPayment)
        .filter(
            PendingPayment.reference == reference,
            PendingPayment.payment_status.in_(PendingPaymentStatus.CLAIMABLE),
        )
        .update(
            {PendingPayment.payment_status: PendingPaymentStatus.PROCESSING, PendingPayment.updated_at: utcnow()},
            synchronize_session=False,
        )
    )

    if not claimed:
        existing = find_order_by_reference(db, reference)
        if existing is not None:
            logger.info(f"[Promotion] {reference} already promoted to {existing.order_number}, no-op")
            return PromotionResult(order=existing, created=False)
        pending = get_pending_payment(db, reference)
        if pending is None:
            raise NotFoundError(f"unknown payment reference {reference}")
        logger.warning(f"[Promotion] {reference} not claimable (status={pending.payment_status})")
        return PromotionResult(order=None, created=False)

    pending = (
        db.query(PendingPayment)
        .filter(PendingPayment.reference == reference)
        .populate_existing()
        .one()
    )

    order = Order(
        order_number=pending.order_number,
        customer_identifier=pending.customer_identifier,
        customer_name=pending.customer_name,
        line_items=list(pending.line_items or []),
        total_amount=pending.total_amount,
        delivery_address=pending.delivery_address,
        restaurant_id=pending.restaurant_id,
        status=OrderStatus.CONFIRMED,
        payment_method=PaymentMethod.PAYSTACK,
        payment_reference=reference,
        payment_status=OrderPaymentStatus.PAID,
        payment_details=details or {},
    )
    # A writer in another process that got past its own claim makes this flush
    # raise IntegrityError on payment_reference; the retried unit then sees its order
    db.add(order)
    pending.payment_status = PendingPaymentStatus.PAID
    db.flush()
    logger.info(f"[Promotion] {reference} -> order {order.order_number} ({order.total_amount})")
    return PromotionResult(order=order, created=True)


def mark_payment_failed(db: Session, reference: str) -> bool:
    """pending/expired -> failed. Terminal statuses are left alone."""
    updated = (
        db.query(PendingPayment)
        .filter(
            PendingPayment.reference == reference,
            PendingPayment.payment_status.in_(PendingPaymentStatus.CLAIMABLE),
        )
        .update(
            {PendingPayment.payment_status: PendingPaymentStatus.FAILED, PendingPayment.updated_at: utcnow()},
            synchronize_session=False,
        )
    )
    if updated:
        logger.info(f"[Payment] {reference} marked failed")
    return bool(updated)


def expire_stale_payments(db: Session, now=None) -> int:
    """pending -> expired for every payment past expires_at."""
    now = now or utcnow()
    updated = (
        db.query(PendingPayment)
        .filter(
            PendingPayment.payment_status == PendingPaymentStatus.PENDING,
            PendingPayment.expires_at <= now,
        )
        .update(
            {PendingPayment.payment_status: PendingPaymentStatus.EXPIRED, PendingPayment.updated_at: now},
            synchronize_session=False,
        )
    )
    return updated


def release_session_after_payment(db: Session, identifier: str, reference: str) -> bool:
    """
    Return the customer's session to INITIAL once their payment settled
    outside the chat (webhook). Only touches a session still waiting on
    this exact reference.
    """
    row = session_store.get_session(db, identifier)
    if row is None or row.pending_payment_reference != reference:
        return False
    state = session_store.to_state(row)
    state.clear_cart()
    state.move_to(Step.INITIAL)
    session_store.apply_state(row, state)
    return True


# ==============================================================================
# CHECKOUT (used by the conversation engine)
# ==============================================================================

class ConfirmationStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass
class ConfirmationOutcome:
    status: ConfirmationStatus
    pending: PendingPayment
    order: Optional[Order] = None


def _draft_key(state: SessionState, summary: CartSummary, address: str) -> str:
    return json.dumps(
        {"who": state.identifier, "address": address, "total": str(summary.total), "lines": summary.snapshot()},
        sort_keys=True,
        default=str,
    )


class CheckoutService:
    """
    Checkout side effects for one unit of work (db session + optional gateway).

    `created_payments` outlives a single attempt: when the processor re-runs
    a unit after a write conflict, the gateway payment created by the first
    attempt is reused instead of opening a second one.
    """

    def __init__(self, db: Session, gateway: PaymentGateway | None = None, created_payments: dict | None = None):
        self.db = db
        self.gateway = gateway
        self.created_payments = created_payments if created_payments is not None else {}

    @property
    def uses_gateway(self) -> bool:
        return self.gateway is not None

    def get_pending(self, reference: str) -> Optional[PendingPayment]:
        return get_pending_payment(self.db, reference)

    def open_pending_payment(self, state: SessionState, summary: CartSummary, address: str) -> PendingPayment:
        """
        Snapshot the priced cart into a PendingPayment and create the gateway payment.

        The gateway is called before anything is written, so no write
        transaction is open while it runs. GatewayError propagates after the
        attempt is recorded as a `pending` row without a pay URL; the sweeper
        expires it.
        """
        if not self.uses_gateway:
            raise GatewayError("no payment gateway configured")

        key = _draft_key(state, summary, address)
        previous = self.created_payments.get(key)
        if previous is not None:
            reference, order_number, payment = previous
            logger.info(f"[Checkout] {state.identifier}: reusing gateway payment {reference} after retry")
        else:
            reference, order_number = generate_payment_reference(), generate_order_number()
            payment = None

        pending = PendingPayment(
            reference=reference,
            order_number=order_number,
            customer_identifier=state.identifier,
            customer_name=state.display_name,
            line_items=summary.snapshot(),
            total_amount=summary.total,
            delivery_address=address,
            restaurant_id=summary.restaurant_id,
            payment_status=PendingPaymentStatus.PENDING,
            expires_at=utcnow() + timedelta(minutes=settings.PENDING_PAYMENT_TTL_MINUTES),
        )
        logger.info(f"[Checkout] {state.identifier}: pending payment {pending.reference} total={pending.total_amount}")

        if payment is None:
            try:
                payment = self.gateway.create_payment(PaymentDraft(
                    reference=pending.reference,
                    order_number=pending.order_number,
                    customer_identifier=pending.customer_identifier,
                    total_amount=summary.total,
                    customer_name=pending.customer_name,
                ))
            except GatewayError:
                self.db.add(pending)
                self.db.flush()
                raise
            self.created_payments[key] = (reference, order_number, payment)

        pending.payment_url = payment.pay_url
        pending.gateway_reference = payment.gateway_reference
        self.db.add(pending)
        self.db.flush()
        return pending

    def place_cash_order(self, state: SessionState, summary: CartSummary, address: str) -> Order:
        order = Order(
            order_number=generate_order_number(),
            customer_identifier=state.identifier,
            customer_name=state.display_name,
            line_items=summary.snapshot(),
            total_amount=summary.total,
            delivery_address=address,
            restaurant_id=summary.restaurant_id,
            status=OrderStatus.PENDING,
            payment_method=PaymentMethod.CASH,
            payment_status=OrderPaymentStatus.PENDING,
        )
        self.db.add(order)
        self.db.flush()
        logger.info(f"[Checkout] {state.identifier}: cash order {order.order_number} total={order.total_amount}")
        return order

    def confirm_payment(self, reference: str) -> ConfirmationOutcome:
        """
        User-initiated check. Verify is read-only at the gateway; our own
        state only changes once the verdict is in.
        """
        pending = self.get_pending(reference)
        if pending is None:
            raise NotFoundError(
                f"pending payment {reference} missing",
                user_message="Sorry, we couldn't find that payment. Please start a new order.",
            )

        if pending.payment_status == PendingPaymentStatus.PAID:
            return ConfirmationOutcome(ConfirmationStatus.PAID, pending, find_order_by_reference(self.db, reference))
        if pending.payment_status == PendingPaymentStatus.CANCELLED:
            return ConfirmationOutcome(ConfirmationStatus.EXPIRED, pending)

        if not self.uses_gateway:
            raise GatewayError("no payment gateway configured")

        result = self.gateway.verify_payment(reference)

        if result.status == VerificationStatus.SUCCESS:
            promotion = promote_pending_payment(self.db, reference, payment_details_from(result.raw))
            if promotion.order is None:
                # Claimed by someone else mid-flight; report as still pending
                return ConfirmationOutcome(ConfirmationStatus.PENDING, pending)
            return ConfirmationOutcome(ConfirmationStatus.PAID, pending, promotion.order)

        if result.status == VerificationStatus.FAIL:
            mark_payment_failed(self.db, reference)
            return ConfirmationOutcome(ConfirmationStatus.FAILED, pending)

        if pending.payment_status == PendingPaymentStatus.FAILED:
            return ConfirmationOutcome(ConfirmationStatus.FAILED, pending)

        if is_expired(pending):
            expire_stale_payments(self.db)
            return ConfirmationOutcome(ConfirmationStatus.EXPIRED, pending)

        return ConfirmationOutcome(ConfirmationStatus.PENDING, pending)
