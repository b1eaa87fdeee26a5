"""Database engine and session factory."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from erp.core.config import get_settings
from erp.db.base import Base

settings = get_settings()


def make_engine(url: str, *, echo: bool = False):
    """Create an engine; SQLite gets foreign keys and cross-thread access."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(url, echo=echo, connect_args=connect_args, future=True)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine(settings.database_url, echo=settings.database_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register on Base.metadata
    from erp.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
