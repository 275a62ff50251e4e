from sqlmodel import create_engine, Session
import os

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/printshop")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

_engine = None


def get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine(DATABASE_URL, echo=SQL_ECHO, pool_pre_ping=True)
    return _engine


def set_engine(engine) -> None:
    """Swap the process-wide engine (used by tests and one-off scripts)."""
    global _engine
    _engine = engine


def get_session() -> Session:
    return Session(get_engine())
