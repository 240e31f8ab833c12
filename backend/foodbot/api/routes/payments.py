"""
Payment gateway webhook, callback and status lookup.

SECURITY: webhook bodies are checked against the HMAC-SHA512 signature
before anything is parsed; a mismatch is rejected here and never reaches
the core.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from foodbot.agent.processor import PaymentEventProcessor
from foodbot.api.deps import get_db, get_gateway, get_payment_events, require_admin
from foodbot.core.exceptions import BusinessError, GatewayError, SignatureError
from foodbot.models.pending_payment import PendingPayment
from foodbot.payments.gateway import PaymentGateway, VerificationStatus
from foodbot.payments.paystack import payment_details_from
from foodbot.schemas.payments import PaymentStatusResponse, PendingPaymentResponse, WebhookAck
from foodbot.services.payment_service import get_pending_payment

logger = logging.getLogger(__name__)
router = APIRouter()

SIGNATURE_HEADER = "x-paystack-signature"


def _check_signature(gateway: Optional[PaymentGateway], body: bytes, signature: Optional[str]) -> None:
    if gateway is None or not gateway.verify_webhook_signature(body, signature):
        raise SignatureError("webhook signature mismatch")


@router.post("/webhook", response_model=WebhookAck)
async def gateway_webhook(
    request: Request,
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
    events: PaymentEventProcessor = Depends(get_payment_events),
):
    body = await request.body()
    try:
        _check_signature(gateway, body, request.headers.get(SIGNATURE_HEADER))
    except SignatureError:
        raise BusinessError.unauthorized("invalid gateway webhook signature")

    try:
        payload = json.loads(body)
    except ValueError:
        raise BusinessError.bad_request("Invalid JSON payload")

    event = payload.get("event")
    data = payload.get("data") or {}
    reference = data.get("reference")
    logger.info(f"[Webhook] {event} for {reference}")

    if not reference or event not in ("charge.success", "charge.failed"):
        return WebhookAck(event=event)

    if event == "charge.success":
        result = await run_in_threadpool(events.settle_success, reference, payment_details_from(data))
    else:
        result = await run_in_threadpool(events.settle_failure, reference)
    return WebhookAck(event=event, handled=result.handled, order_number=result.order_number)


def _status(reference: str, db: Session, gateway: Optional[PaymentGateway], events: PaymentEventProcessor) -> PaymentStatusResponse:
    pending = get_pending_payment(db, reference)
    if pending is None:
        raise BusinessError.not_found("Payment", reason=f"unknown reference {reference}")
    if gateway is None:
        raise BusinessError.bad_request("Online payments are not enabled")

    try:
        result = gateway.verify_payment(reference)
    except GatewayError as e:
        raise BusinessError.bad_gateway(e)

    order_number = None
    if result.status == VerificationStatus.SUCCESS:
        order_number = events.settle_success(reference, payment_details_from(result.raw)).order_number
    elif result.status == VerificationStatus.FAIL:
        events.settle_failure(reference)

    db.refresh(pending)
    return PaymentStatusResponse(
        reference=reference,
        gateway_status=result.status.value,
        payment_status=pending.payment_status,
        order_number=order_number,
    )


@router.get("/status/{reference}", response_model=PaymentStatusResponse)
def payment_status(
    reference: str,
    db: Session = Depends(get_db),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
    events: PaymentEventProcessor = Depends(get_payment_events),
):
    """Verify a reference against the gateway and reconcile it."""
    return _status(reference, db, gateway, events)


@router.get("/callback", response_model=PaymentStatusResponse)
def payment_callback(
    reference: str,
    db: Session = Depends(get_db),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
    events: PaymentEventProcessor = Depends(get_payment_events),
):
    """Where the gateway redirects the customer after paying (?reference=...)."""
    return _status(reference, db, gateway, events)


@router.get("/pending/{reference}", response_model=PendingPaymentResponse, dependencies=[Depends(require_admin)])
def get_pending(reference: str, db: Session = Depends(get_db)):
    pending = db.query(PendingPayment).filter(PendingPayment.reference == reference).first()
    if not pending:
        raise BusinessError.not_found("Payment")
    return pending
