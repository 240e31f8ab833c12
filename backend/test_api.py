"""
HTTP surface: inbound messages, payment webhook/status, admin orders and sessions.
"""
import json

from foodbot.agent.conversation_state import Step
from foodbot.models.order import Order
from foodbot.models.pending_payment import PendingPayment, PendingPaymentStatus
from foodbot.payments.gateway import VerificationStatus

from conftest import CUSTOMER, sign
from test_conversation_flow import ADDRESS, to_awaiting_payment

ADMIN = {"X-Admin-Key": "admin-secret"}


def webhook(client, event, reference, signature=None, **data):
    body = json.dumps({"event": event, "data": {"reference": reference, "channel": "card", "id": 991, **data}}).encode()
    headers = {"Content-Type": "application/json", "x-paystack-signature": signature or sign(body)}
    return client.post("/payments/webhook", content=body, headers=headers)


def rows(session_factory, model):
    db = session_factory()
    try:
        return db.query(model).all()
    finally:
        db.close()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


# ==============================================================================
# INBOUND MESSAGES
# ==============================================================================

def test_inbound_message_requires_token(client):
    response = client.post("/webhook/messages", json={"sender": CUSTOMER, "text": "hi"})
    assert response.status_code == 401

    response = client.post("/webhook/messages", json={"sender": CUSTOMER, "text": "hi"}, headers={"X-Webhook-Token": "wrong"})
    assert response.status_code == 401


def test_inbound_message_round_trip(client, menu):
    headers = {"X-Webhook-Token": "inbound-token"}

    response = client.post("/webhook/messages", json={"sender": CUSTOMER, "text": "hi"}, headers=headers)
    assert response.status_code == 200
    [reply] = response.json()["replies"]
    assert reply["type"] == "buttons"
    assert reply["buttons"] == ["Browse Menu", "View Cart", "Help"]

    response = client.post("/webhook/messages", json={"sender": CUSTOMER, "text": "suya"}, headers=headers)
    [reply] = response.json()["replies"]
    assert reply["type"] == "list"
    assert reply["sections"][0]["rows"][0]["id"] == f"food_{menu.suya}"

    response = client.post(
        "/webhook/messages",
        json={"sender": CUSTOMER, "text": "Beef Suya", "selection_id": f"food_{menu.suya}"},
        headers=headers,
    )
    [reply] = response.json()["replies"]
    assert reply["buttons"] == ["1", "2", "3", "Custom Amount"]


def test_inbound_message_rejects_empty_sender(client):
    response = client.post("/webhook/messages", json={"sender": "", "text": "hi"}, headers={"X-Webhook-Token": "inbound-token"})
    assert response.status_code == 422


# ==============================================================================
# PAYMENT WEBHOOK
# ==============================================================================

def test_webhook_rejects_bad_signature(client, chat, menu, session_factory, messenger):
    reference = to_awaiting_payment(chat, menu)

    response = webhook(client, "charge.success", reference, signature="0" * 128)
    assert response.status_code == 401

    [pending] = rows(session_factory, PendingPayment)
    assert pending.payment_status == PendingPaymentStatus.PENDING
    assert rows(session_factory, Order) == []
    assert messenger.sent == []


def test_webhook_success_is_applied_once(client, chat, menu, session_factory, messenger):
    reference = to_awaiting_payment(chat, menu)

    response = webhook(client, "charge.success", reference, authorization={"last4": "4081"})
    assert response.status_code == 200
    body = response.json()
    assert body["handled"] is True
    order_number = body["order_number"]

    state = chat.state()
    assert state.step == Step.INITIAL
    assert state.cart == []
    assert state.pending_payment_reference is None
    assert len(messenger.texts_to(CUSTOMER)) == 1
    assert order_number in messenger.texts_to(CUSTOMER)[0]

    # Gateway retries the same event: no second order, no second notification
    response = webhook(client, "charge.success", reference)
    assert response.status_code == 200
    assert response.json()["order_number"] == order_number

    [order] = rows(session_factory, Order)
    assert order.payment_reference == reference
    assert order.payment_details["card_last4"] == "4081"
    assert len(messenger.texts_to(CUSTOMER)) == 1


def test_webhook_after_user_already_confirmed(client, chat, menu, gateway, session_factory, messenger):
    reference = to_awaiting_payment(chat, menu)
    gateway.verify_status = VerificationStatus.SUCCESS
    chat.send("paid")

    response = webhook(client, "charge.success", reference)
    assert response.status_code == 200
    assert response.json()["handled"] is True
    assert len(rows(session_factory, Order)) == 1
    assert messenger.sent == []


def test_webhook_failure_notifies(client, chat, menu, session_factory, messenger):
    reference = to_awaiting_payment(chat, menu)

    response = webhook(client, "charge.failed", reference)
    assert response.status_code == 200
    assert response.json()["handled"] is True
    [pending] = rows(session_factory, PendingPayment)
    assert pending.payment_status == PendingPaymentStatus.FAILED
    assert "couldn't complete the payment" in messenger.texts_to(CUSTOMER)[0]


def test_webhook_ignores_other_events_and_unknown_references(client, messenger):
    response = webhook(client, "transfer.success", "FB-ANY")
    assert response.status_code == 200
    assert response.json()["handled"] is False

    response = webhook(client, "charge.success", "FB-UNKNOWN")
    assert response.status_code == 200
    assert response.json()["handled"] is False
    assert messenger.sent == []


def test_webhook_rejects_invalid_json(client):
    body = b"not json"
    response = client.post("/payments/webhook", content=body, headers={"x-paystack-signature": sign(body)})
    assert response.status_code == 400


# ==============================================================================
# PAYMENT STATUS / CALLBACK
# ==============================================================================

def test_status_lookup_reconciles(client, chat, menu, gateway, session_factory):
    reference = to_awaiting_payment(chat, menu)

    response = client.get(f"/payments/status/{reference}")
    assert response.status_code == 200
    assert response.json()["gateway_status"] == "PENDING"
    assert response.json()["payment_status"] == PendingPaymentStatus.PENDING

    gateway.verify_status = VerificationStatus.SUCCESS
    response = client.get("/payments/callback", params={"reference": reference})
    body = response.json()
    assert body["gateway_status"] == "SUCCESS"
    assert body["payment_status"] == PendingPaymentStatus.PAID
    assert body["order_number"]
    assert chat.state().step == Step.INITIAL


def test_status_unknown_reference(client):
    assert client.get("/payments/status/FB-NOPE").status_code == 404


def test_status_gateway_unreachable(client, chat, menu, gateway):
    reference = to_awaiting_payment(chat, menu)
    gateway.fail_verify = True
    assert client.get(f"/payments/status/{reference}").status_code == 502


def test_pending_payment_admin_view(client, chat, menu):
    reference = to_awaiting_payment(chat, menu)
    assert client.get(f"/payments/pending/{reference}").status_code == 401

    response = client.get(f"/payments/pending/{reference}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["delivery_address"] == ADDRESS


# ==============================================================================
# ADMIN: ORDERS & SESSIONS
# ==============================================================================

def _paid_order(client, chat, menu):
    reference = to_awaiting_payment(chat, menu)
    webhook(client, "charge.success", reference)
    return client.get("/orders", headers=ADMIN).json()[0]


def test_orders_require_admin_key(client):
    assert client.get("/orders").status_code == 401
    assert client.get("/orders", headers={"X-Admin-Key": "nope"}).status_code == 401


def test_order_status_update_notifies_customer(client, chat, menu, messenger):
    order = _paid_order(client, chat, menu)
    assert order["status"] == "confirmed"
    assert order["line_items"][0]["name"] == "Jollof Rice"
    messenger.sent.clear()

    response = client.patch(f"/orders/{order['id']}/status", json={"status": "preparing"}, headers=ADMIN)
    assert response.status_code == 200
    body = response.json()
    assert body["order"]["status"] == "preparing"
    assert body["notified"] is True
    assert "being prepared" in messenger.texts_to(CUSTOMER)[0]
    assert "30-45 mins" in messenger.texts_to(CUSTOMER)[0]


def test_order_status_rules(client, chat, menu):
    order = _paid_order(client, chat, menu)

    response = client.patch(f"/orders/{order['id']}/status", json={"status": "flying"}, headers=ADMIN)
    assert response.status_code == 400

    response = client.patch(f"/orders/{order['id']}/status", json={"status": "delivered"}, headers=ADMIN)
    assert response.status_code == 400

    response = client.patch("/orders/9999/status", json={"status": "preparing"}, headers=ADMIN)
    assert response.status_code == 404

    response = client.get(f"/orders/{order['id']}", headers=ADMIN)
    assert response.json()["status"] == "confirmed"


def test_order_filters(client, chat, menu):
    _paid_order(client, chat, menu)
    assert len(client.get("/orders", params={"phone": CUSTOMER}, headers=ADMIN).json()) == 1
    assert client.get("/orders", params={"status": "delivered"}, headers=ADMIN).json() == []


def test_sessions_admin(client, chat, menu):
    chat.start()
    chat.send("jollof rice")

    assert client.get("/sessions").status_code == 401

    response = client.get(f"/sessions/{CUSTOMER}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["current_step"] == "viewing_options"
    assert response.json()["search_result_ids"] == [menu.jollof]

    listed = client.get("/sessions", params={"step": "viewing_options"}, headers=ADMIN).json()
    assert [s["identifier"] for s in listed] == [CUSTOMER]

    assert client.delete(f"/sessions/{CUSTOMER}", headers=ADMIN).status_code == 200
    assert client.get(f"/sessions/{CUSTOMER}", headers=ADMIN).status_code == 404
    assert chat.state() is None
