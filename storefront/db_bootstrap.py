# storefront/db_bootstrap.py
from __future__ import annotations

import logging

from sqlalchemy import create_mock_engine
from sqlalchemy.engine import Engine

from .db import Base, engine
from . import models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)


def ensure_schema(bind: Engine | None = None) -> None:
    target = bind or engine
    Base.metadata.create_all(target)
    logger.info("schema ready: %d tables", len(Base.metadata.tables))


def drop_schema(bind: Engine | None = None) -> None:
    # drop_all walks the dependency graph in reverse, children before parents
    target = bind or engine
    Base.metadata.drop_all(target)
    logger.info("schema dropped")


def render_schema_sql(dialect_name: str = "postgresql") -> str:
    """
    Render the complete DDL script (tables, constraints, indexes) for a
    dialect without connecting to a database.
    """
    statements: list[str] = []

    def _collect(sql, *multiparams, **params):
        statements.append(str(sql.compile(dialect=mock.dialect)).strip() + ";")

    mock = create_mock_engine(f"{dialect_name}://", _collect)
    Base.metadata.create_all(mock, checkfirst=False)
    return "\n\n".join(statements) + "\n"
