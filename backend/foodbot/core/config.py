"""Application configuration with environment overrides.

Environment variables override all defaults.
ADMIN_API_KEY must be set in production - startup fails fast if it is missing.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Local development: backend/.env, never overriding the real environment
_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./foodbot.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"

    # Admin access to orders/sessions (header: X-Admin-Key)
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")
    if not ADMIN_API_KEY and ENVIRONMENT == "production":
        raise ValueError(
            "ADMIN_API_KEY must be set in production environment. "
            "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )

    # Shared token for normalized inbound messages (header: X-Webhook-Token)
    INBOUND_WEBHOOK_TOKEN: str = os.getenv("INBOUND_WEBHOOK_TOKEN", "")

    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    # Telegram Bot (Must be set via .env, never in code)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # Payments: "paystack" gates orders behind the gateway, "cash" finalizes directly
    PAYMENT_PROVIDER: str = os.getenv("PAYMENT_PROVIDER", "paystack").lower()
    PAYSTACK_SECRET_KEY: str = os.getenv("PAYSTACK_SECRET_KEY", "")
    PAYSTACK_BASE_URL: str = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    CURRENCY: str = os.getenv("CURRENCY", "NGN")
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₦")

    # Network bounds (seconds)
    GATEWAY_TIMEOUT_SECONDS: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
    SEND_TIMEOUT_SECONDS: float = float(os.getenv("SEND_TIMEOUT_SECONDS", "10"))

    # Lifetimes
    PENDING_PAYMENT_TTL_MINUTES: int = int(os.getenv("PENDING_PAYMENT_TTL_MINUTES", "30"))
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "24"))
    MAINTENANCE_INTERVAL_SECONDS: int = int(os.getenv("MAINTENANCE_INTERVAL_SECONDS", "300"))

    # Conversation rules
    MAX_QUANTITY_PER_ADD: int = int(os.getenv("MAX_QUANTITY_PER_ADD", "10"))
    # None keeps merged cart lines unbounded (repeated adds may exceed MAX_QUANTITY_PER_ADD)
    MAX_LINE_QUANTITY: Optional[int] = _optional_int("MAX_LINE_QUANTITY")
    SEARCH_RESULT_LIMIT: int = int(os.getenv("SEARCH_RESULT_LIMIT", "10"))
    MIN_ADDRESS_LENGTH: int = int(os.getenv("MIN_ADDRESS_LENGTH", "10"))

    # Optimistic session writes
    SESSION_WRITE_RETRIES: int = int(os.getenv("SESSION_WRITE_RETRIES", "3"))

    @property
    def gateway_enabled(self) -> bool:
        return self.PAYMENT_PROVIDER == "paystack" and bool(self.PAYSTACK_SECRET_KEY)


settings = Settings()
