# storefront/errors.py
"""
Store errors.

Constraint enforcement lives in the database engine. This module turns the
engine's IntegrityError into one of a handful of domain errors so callers
(services, the API) can react without knowing which backend raised it.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class StoreError(Exception):
    code = "STORE_ERROR"

    def __init__(self, message: str, *, constraint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.constraint = constraint


class NotFound(StoreError):
    code = "NOT_FOUND"


class DuplicateRecord(StoreError):
    """Unique / primary key violation (email, SKU, category name, one payment per order)."""
    code = "DUPLICATE"


class ConstraintViolation(StoreError):
    """CHECK, NOT NULL or enum violation (negative price, rating out of 1..5, quantity <= 0)."""
    code = "CONSTRAINT_VIOLATION"


class InvalidReference(StoreError):
    """Insert/update pointing at a row that does not exist."""
    code = "INVALID_REFERENCE"


class DeleteRestricted(StoreError):
    """Delete refused because dependent rows still reference the target."""
    code = "DELETE_RESTRICTED"


# SQLSTATE classes (PostgreSQL / psycopg)
_PG_UNIQUE = "23505"
_PG_FOREIGN_KEY = "23503"
_PG_CHECK = "23514"
_PG_NOT_NULL = "23502"

# MySQL error numbers
_MY_DUPLICATE = 1062
_MY_NOT_NULL = 1048
_MY_CHECK = 3819
_MY_FK_PARENT = 1451  # cannot delete or update a parent row
_MY_FK_CHILD = 1452   # cannot add or update a child row


def _sqlstate(orig) -> Optional[str]:
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _mysql_errno(orig) -> Optional[int]:
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _classify(exc: IntegrityError) -> str:
    orig = exc.orig
    state = _sqlstate(orig)
    if state:
        return {
            _PG_UNIQUE: "unique",
            _PG_FOREIGN_KEY: "foreign_key",
            _PG_CHECK: "check",
            _PG_NOT_NULL: "not_null",
        }.get(state, "unknown")

    errno = _mysql_errno(orig)
    if errno is not None:
        if errno == _MY_DUPLICATE:
            return "unique"
        if errno in (_MY_FK_PARENT, _MY_FK_CHILD):
            return "foreign_key"
        if errno == _MY_CHECK:
            return "check"
        if errno == _MY_NOT_NULL:
            return "not_null"

    # SQLite only reports through the message text
    msg = str(orig).lower()
    if "unique constraint failed" in msg or "duplicate" in msg:
        return "unique"
    if "foreign key constraint failed" in msg:
        return "foreign_key"
    if "check constraint failed" in msg:
        return "check"
    if "not null constraint failed" in msg:
        return "not_null"
    return "unknown"


def _constraint_name(exc: IntegrityError) -> Optional[str]:
    diag = getattr(exc.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    msg = str(exc.orig)
    if ":" in msg:
        return msg.split(":", 1)[1].strip() or None
    return None


def translate_integrity_error(exc: IntegrityError, *, deleting: bool = False) -> StoreError:
    """
    Map an engine IntegrityError onto a StoreError.

    A foreign key failure while deleting means a RESTRICT rule protected the
    row; anywhere else it means the new row points at nothing.
    """
    kind = _classify(exc)
    constraint = _constraint_name(exc)

    if kind == "unique":
        return DuplicateRecord(f"Duplicate value violates {constraint or 'a unique constraint'}",
                               constraint=constraint)
    if kind in ("check", "not_null"):
        return ConstraintViolation(f"Value violates {constraint or 'a column constraint'}",
                                   constraint=constraint)
    if kind == "foreign_key":
        if deleting:
            return DeleteRestricted("Row is still referenced by dependent rows", constraint=constraint)
        return InvalidReference("Referenced row does not exist", constraint=constraint)
    return StoreError(str(exc.orig), constraint=constraint)


@contextmanager
def integrity_guard(session: Session, *, deleting: bool = False) -> Iterator[Session]:
    """
    Flush the work done inside the block. On an integrity failure roll the
    session back and raise the translated StoreError.
    """
    try:
        yield session
        session.flush()
    except IntegrityError as e:
        session.rollback()
        err = translate_integrity_error(e, deleting=deleting)
        logger.info("integrity failure code=%s constraint=%s", err.code, err.constraint)
        raise err from e
