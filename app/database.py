"""Engine and session handling for the admin account store.

SQLite is used for local development and tests; deployments point
DATABASE_URL at the MySQL server that holds ``admin_users``.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import settings

# Connections kept open to a server database.
POOL_SIZE = 10


def build_engine(database_url: str) -> Engine:
    """Create an engine; server databases get a bounded connection pool."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_size=POOL_SIZE)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def init_db(bind: Optional[Engine] = None) -> None:
    """Create missing tables, on the application engine unless ``bind`` is given."""
    import app.models  # noqa: F401  registers the tables on Base

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """Dependency that provides a database session and ensures cleanup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
