# storefront/db.py
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .settings import settings


def make_engine(url: str, echo: bool = False) -> Engine:
    """
    Build an engine for `url`.

    SQLite only enforces foreign keys (and therefore CASCADE / RESTRICT /
    SET NULL) when the pragma is switched on for every connection.
    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    parsed = make_url(url)
    kwargs: dict = {"future": True, "echo": echo}

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True  # avoid stale connections

    engine = create_engine(url, **kwargs)

    if parsed.get_backend_name() == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


engine = make_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

# Session factory
SessionLocal = make_session_factory(engine)

# Declarative base exported for models.py
Base = declarative_base()
