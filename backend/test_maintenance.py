"""Maintenance sweep: payment expiry and idle session cleanup."""
from datetime import timedelta

from foodbot.agent.maintenance import sweep
from foodbot.core.timeutils import utcnow
from foodbot.models.chat_session import ChatSession
from foodbot.models.pending_payment import PendingPayment, PendingPaymentStatus
from foodbot.services import session_store

from test_promotion import make_pending, status_of


def _session(session_factory, identifier, idle_for):
    db = session_factory()
    try:
        row, _ = session_store.load_or_create(db, identifier)
        row.last_activity_at = utcnow() - idle_for
        db.commit()
    finally:
        db.close()


def test_sweep_expires_and_deletes(session_factory):
    overdue = make_pending(session_factory, expires_in=timedelta(minutes=-10))
    fresh = make_pending(session_factory)
    _session(session_factory, "idle-user", timedelta(hours=48))
    _session(session_factory, "active-user", timedelta(minutes=5))

    result = sweep(session_factory=session_factory)

    assert result.expired_payments == 1
    assert result.deleted_sessions == 1
    assert status_of(session_factory, overdue) == PendingPaymentStatus.EXPIRED
    assert status_of(session_factory, fresh) == PendingPaymentStatus.PENDING

    db = session_factory()
    try:
        assert [row.identifier for row in db.query(ChatSession).all()] == ["active-user"]
    finally:
        db.close()


def test_sweep_with_nothing_to_do(session_factory):
    result = sweep(session_factory=session_factory)
    assert (result.expired_payments, result.deleted_sessions) == (0, 0)


def test_sweep_uses_given_clock(session_factory):
    reference = make_pending(session_factory, expires_in=timedelta(minutes=30))
    sweep(session_factory=session_factory, now=utcnow() + timedelta(hours=1))

    db = session_factory()
    try:
        pending = db.query(PendingPayment).filter(PendingPayment.reference == reference).one()
        assert pending.payment_status == PendingPaymentStatus.EXPIRED
    finally:
        db.close()
