"""Database session. SQLite compatible with connection pooling."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from foodbot.core.config import settings


def build_engine(url: str):
    connect_args = (
        {"check_same_thread": False}
        if url.startswith("sqlite")
        else {}
    )

    if url.startswith("sqlite"):
        # SQLite: Use NullPool for thread-safety
        from sqlalchemy.pool import NullPool
        return create_engine(
            url,
            connect_args=connect_args,
            poolclass=NullPool
        )

    # PostgreSQL/MySQL: Use QueuePool with sensible defaults
    return create_engine(
        url,
        connect_args=connect_args,
        pool_size=5,  # Number of persistent connections
        max_overflow=10,  # Max temporary connections
        pool_timeout=30,  # Seconds to wait for connection
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True  # Verify connection health
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
