"""
IntegrityError translation across backends.
"""
from sqlalchemy.exc import IntegrityError

from storefront.errors import (
    ConstraintViolation, DeleteRestricted, DuplicateRecord, InvalidReference,
    StoreError, translate_integrity_error,
)


class _PgDiag:
    def __init__(self, constraint_name):
        self.constraint_name = constraint_name


class _PgError(Exception):
    def __init__(self, pgcode, constraint_name=None):
        super().__init__("pg error")
        self.pgcode = pgcode
        self.diag = _PgDiag(constraint_name)


def _wrap(orig):
    return IntegrityError("INSERT ...", {}, orig)


class TestPostgres:
    def test_unique(self):
        err = translate_integrity_error(_wrap(_PgError("23505", "users_email_key")))
        assert isinstance(err, DuplicateRecord)
        assert err.constraint == "users_email_key"

    def test_check(self):
        err = translate_integrity_error(_wrap(_PgError("23514", "ck_reviews_rating_range")))
        assert isinstance(err, ConstraintViolation)
        assert err.constraint == "ck_reviews_rating_range"

    def test_foreign_key_depends_on_operation(self):
        exc = _wrap(_PgError("23503", "orders_user_id_fkey"))
        assert isinstance(translate_integrity_error(exc), InvalidReference)
        assert isinstance(translate_integrity_error(exc, deleting=True), DeleteRestricted)


class TestMySQL:
    def test_duplicate_entry(self):
        err = translate_integrity_error(_wrap(Exception(1062, "Duplicate entry 'x' for key 'Email'")))
        assert isinstance(err, DuplicateRecord)

    def test_parent_row(self):
        err = translate_integrity_error(_wrap(Exception(1451, "Cannot delete or update a parent row")), deleting=True)
        assert isinstance(err, DeleteRestricted)

    def test_check(self):
        err = translate_integrity_error(_wrap(Exception(3819, "Check constraint 'reviews_chk_1' is violated.")))
        assert isinstance(err, ConstraintViolation)


class TestSQLite:
    def test_unique_names_column(self):
        err = translate_integrity_error(_wrap(Exception("UNIQUE constraint failed: payments.order_id")))
        assert isinstance(err, DuplicateRecord)
        assert err.constraint == "payments.order_id"

    def test_not_null(self):
        err = translate_integrity_error(_wrap(Exception("NOT NULL constraint failed: users.email")))
        assert isinstance(err, ConstraintViolation)

    def test_unknown_falls_back(self):
        err = translate_integrity_error(_wrap(Exception("something odd")))
        assert type(err) is StoreError
        assert err.code == "STORE_ERROR"
