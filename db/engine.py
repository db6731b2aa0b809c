"""
SQLAlchemy engine and session factory for the principal store.

Usage:
    from db.engine import get_session_factory

    SessionLocal = get_session_factory()
    with SessionLocal() as db:
        principal = db.get(Principal, principal_id)
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import Config


# Base class for all models
Base = declarative_base()

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with pooling suited to the backend."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before use
        pool_size=10,
        max_overflow=20,
        echo=echo,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )


def get_engine() -> Engine:
    """Get the process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(Config.DATABASE_URL, echo=Config.DB_ECHO)
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory

