"""Database connection and session factory.

Production runs on PostgreSQL with the session timezone pinned to UTC.
SQLite URLs (local dev, tests) skip the pool sizing and the timezone hook.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


if engine.dialect.name == "postgresql":

    @event.listens_for(engine, "connect")
    def _set_timezone(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone = 'UTC'")
        cursor.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Commit the block as one transaction; roll back (releasing row locks) on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
