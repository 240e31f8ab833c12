"""Shared fixtures: throwaway SQLite database, seeded catalog, fake gateway, recording messenger."""
import hashlib
import hmac
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from foodbot.agent.processor import MessageProcessor, PaymentEventProcessor
from foodbot.agent.selections import InboundMessage, decode_selection
from foodbot.core.config import settings
from foodbot.core.exceptions import GatewayError
from foodbot.core.locks import KeyedLock
from foodbot.db.init_db import init_db
from foodbot.db.session import build_engine
from foodbot.models.catalog import Category, FoodItem, Restaurant
from foodbot.payments.gateway import GatewayPayment, VerificationResult, VerificationStatus
from foodbot.services import session_store

WEBHOOK_SECRET = "sk_test_webhook_secret"
CUSTOMER = "2348012345678"


def sign(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha512).hexdigest()


class FakeGateway:
    """In-memory gateway: records drafts, answers verify with `verify_status`."""

    def __init__(self):
        self.drafts = []
        self.verified = []
        self.verify_status = VerificationStatus.PENDING
        self.fail_create = False
        self.fail_verify = False

    def create_payment(self, draft):
        if self.fail_create:
            raise GatewayError("gateway down")
        self.drafts.append(draft)
        return GatewayPayment(pay_url=f"https://pay.example/{draft.reference}", gateway_reference=f"AC_{draft.reference}")

    def verify_payment(self, reference):
        if self.fail_verify:
            raise GatewayError("verify timeout")
        self.verified.append(reference)
        raw = {
            "status": {"SUCCESS": "success", "FAIL": "failed", "PENDING": "ongoing"}[self.verify_status.value],
            "reference": reference,
            "channel": "card",
            "id": 424242,
            "authorization": {"last4": "4081", "bank": "TEST BANK"},
        }
        return VerificationResult(status=self.verify_status, raw=raw)

    def verify_webhook_signature(self, payload, signature):
        if not signature:
            return False
        return hmac.compare_digest(sign(payload), signature)


class RecordingMessenger:
    def __init__(self):
        self.sent = []

    def send_text(self, to, text):
        self.sent.append(SimpleNamespace(to=to, kind="text", text=text))

    def send_buttons(self, to, text, buttons):
        self.sent.append(SimpleNamespace(to=to, kind="buttons", text=text, buttons=buttons))

    def send_list(self, to, text, sections, button):
        self.sent.append(SimpleNamespace(to=to, kind="list", text=text, sections=sections))

    def texts_to(self, to):
        return [m.text for m in self.sent if m.to == to]


class ChatDriver:
    """Talks to the processor like a chat client would."""

    def __init__(self, processor, session_factory, sender=CUSTOMER):
        self.processor = processor
        self.session_factory = session_factory
        self.sender = sender

    def send(self, text):
        return self.processor.process(InboundMessage(sender=self.sender, text=text, display_name="Ada"))

    def tap(self, selection_id, label=None):
        inbound = InboundMessage(
            sender=self.sender,
            text=label or selection_id,
            selection=decode_selection(selection_id, label),
            display_name="Ada",
        )
        return self.processor.process(inbound)

    def state(self):
        db = self.session_factory()
        try:
            row = session_store.get_session(db, self.sender)
            return session_store.to_state(row) if row else None
        finally:
            db.close()

    def start(self):
        """Consume the one-time welcome."""
        return self.send("hi")


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'foodbot_test.db'}")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def menu(session_factory):
    """Two restaurants, three categories, a handful of dishes (one unavailable)."""
    db = session_factory()
    try:
        mama = Restaurant(name="Mama Put Kitchen", delivery_time="30-45 mins")
        suya = Restaurant(name="Suya Spot", delivery_time="25-40 mins")
        rice = Category(name="Rice Dishes", description="Jollof, fried rice")
        grills = Category(name="Grills", description="Off the grill")
        drinks = Category(name="Drinks", description="Cold drinks")
        db.add_all([mama, suya, rice, grills, drinks])
        db.flush()

        jollof = FoodItem(name="Jollof Rice", description="Smoky party jollof", price=Decimal("3500"),
                          category_id=rice.id, restaurant_id=mama.id, tags=["rice", "party"])
        fried = FoodItem(name="Fried Rice", description="Vegetable fried rice", price=Decimal("4200"),
                         category_id=rice.id, restaurant_id=mama.id, tags=["rice"])
        beef_suya = FoodItem(name="Beef Suya", description="Spicy grilled beef", price=Decimal("2500"),
                             category_id=grills.id, restaurant_id=suya.id, tags=["suya", "spicy"])
        old_soup = FoodItem(name="Old Soup", description="Off the menu", price=Decimal("1000"),
                            category_id=rice.id, restaurant_id=mama.id, tags=[], is_available=False)
        db.add_all([jollof, fried, beef_suya, old_soup])
        db.commit()

        return SimpleNamespace(
            jollof=jollof.id, fried_rice=fried.id, suya=beef_suya.id, old_soup=old_soup.id,
            rice=rice.id, grills=grills.id, drinks=drinks.id, restaurant=mama.id,
        )
    finally:
        db.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def locks():
    return KeyedLock()


@pytest.fixture
def processor(session_factory, gateway, messenger, locks):
    return MessageProcessor(
        session_factory=session_factory,
        gateway_factory=lambda: gateway,
        messenger=messenger,
        locks=locks,
    )


@pytest.fixture
def cash_processor(session_factory, messenger, locks):
    return MessageProcessor(
        session_factory=session_factory,
        gateway_factory=lambda: None,
        messenger=messenger,
        locks=locks,
    )


@pytest.fixture
def payment_events(session_factory, messenger, locks):
    return PaymentEventProcessor(session_factory=session_factory, messenger=messenger, locks=locks)


@pytest.fixture
def chat(processor, session_factory, menu):
    return ChatDriver(processor, session_factory)


@pytest.fixture
def cash_chat(cash_processor, session_factory, menu):
    return ChatDriver(cash_processor, session_factory)


@pytest.fixture
def client(monkeypatch, session_factory, processor, payment_events, gateway, messenger):
    from fastapi.testclient import TestClient

    from foodbot.api import deps
    from foodbot.main import app

    monkeypatch.setattr(settings, "ADMIN_API_KEY", "admin-secret")
    monkeypatch.setattr(settings, "INBOUND_WEBHOOK_TOKEN", "inbound-token")

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = override_db
    app.dependency_overrides[deps.get_processor] = lambda: processor
    app.dependency_overrides[deps.get_payment_events] = lambda: payment_events
    app.dependency_overrides[deps.get_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_messenger] = lambda: messenger

    # No context manager: skip lifespan (no bot, no sweeper, no default DB)
    yield TestClient(app)
    app.dependency_overrides.clear()
