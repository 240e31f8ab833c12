"""
FoodBot Backend - conversational food ordering.

ARCHITECTURE:
- Telegram Bot: customer chat (browse, cart, checkout, pay)
- /webhook/messages: the same conversation core for other chat channels
- FastAPI Backend: payment webhooks, admin order/session access
- SQL database: sessions, pending payments and orders

SAFETY MODEL:
- One unit of work per inbound message, serialized per customer
- State is committed before any message is sent
- A paid checkout becomes an order exactly once
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foodbot.agent.maintenance import start_sweeper, stop_sweeper
from foodbot.api.routes import messages, orders, payments, sessions
from foodbot.core.config import settings
from foodbot.db.init_db import init_db
from foodbot.telegram.bot import start_bot_background, stop_bot_background

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Initialize database tables
    2. Start Telegram bot polling (if token provided)
    3. Start maintenance sweeper (payment expiry, idle sessions)

    Shutdown: stop both background workers.
    """
    try:
        logger.info("[*] Initializing database...")
        init_db()

        if settings.TELEGRAM_BOT_TOKEN:
            logger.info("[*] Starting Telegram bot...")
            start_bot_background()
        else:
            logger.warning("[WARN] Telegram bot disabled (no token)")

        start_sweeper()
        logger.info(f"[OK] Payments: {'paystack' if settings.gateway_enabled else 'cash on delivery'}")
    except Exception as e:
        logger.error(f"[ERROR] Startup error: {e}", exc_info=True)

    yield

    try:
        stop_sweeper()
        if settings.TELEGRAM_BOT_TOKEN:
            stop_bot_background()
    except Exception as e:
        logger.error(f"[ERROR] Shutdown error: {e}")


app = FastAPI(
    title="FoodBot API",
    description="Conversational food ordering: chat webhook, payments and order admin.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Admin-Key",
        "X-Webhook-Token",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(messages.router, prefix="/webhook", tags=["messages"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])
app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])


@app.get("/health")
def health():
    return {
        "status": "ok",
        "payments": "paystack" if settings.gateway_enabled else "cash",
        "telegram": bool(settings.TELEGRAM_BOT_TOKEN),
    }
