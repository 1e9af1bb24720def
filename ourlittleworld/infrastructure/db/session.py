"""
Database engine and per-request sessions (SQLAlchemy over psycopg)
"""
import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ourlittleworld.application.errors import UpstreamFailure
from ourlittleworld.config import get_settings


class Base(DeclarativeBase):
    """Declarative base shared by every OurLittleWorld table"""
    pass


_engine = None
_SessionLocal = None


def get_engine():
    """
    Process-wide engine. PostgreSQL connections run in the configured TIMEZONE,
    so server-side now() and the "today" used for moods and months agree.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.get_sqlalchemy_url()
        connect_args = {}
        if url.startswith("postgresql"):
            connect_args["options"] = f"-c timezone={settings.TIMEZONE}"
        _engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    FastAPI dependency: one session per request.

    A use case that raised mid-write (lost connection, constraint error) leaves
    the transaction rolled back before the session goes back to the pool.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _libpq_url(url: str) -> str:
    """psycopg.connect() wants postgresql://, not the SQLAlchemy driver form"""
    return url.replace("postgresql+psycopg://", "postgresql://", 1)


def check_db_connection() -> None:
    """
    Readiness check: raw psycopg round trip to PostgreSQL

    Raises:
        UpstreamFailure: the database is unreachable (served as 503)
    """
    settings = get_settings()
    try:
        with psycopg.connect(_libpq_url(settings.DATABASE_URL), connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
    except psycopg.OperationalError as exc:
        raise UpstreamFailure("Database is unavailable, please retry") from exc
