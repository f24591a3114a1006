"""
Constraint enforcement by the engine, surfaced as store errors.
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from storefront.errors import ConstraintViolation, DuplicateRecord, InvalidReference, integrity_guard
from storefront.models import Category, OrderItem, Product, Review, User
from storefront.services import create_order


class TestUniqueness:
    def test_duplicate_email_rejected(self, session, shop):
        with pytest.raises(DuplicateRecord) as exc_info:
            with integrity_guard(session):
                session.add(User(email="john.doe@example.com", password_hash="x"))

        assert exc_info.value.code == "DUPLICATE"
        assert session.scalars(select(User).where(User.email == "john.doe@example.com")).all()

    def test_duplicate_sku_rejected(self, session, shop):
        with pytest.raises(DuplicateRecord):
            with integrity_guard(session):
                session.add(Product(sku="SKU-1001", name="Another", price=Decimal("1.00")))

    def test_duplicate_category_name_rejected(self, session, shop):
        with pytest.raises(DuplicateRecord):
            with integrity_guard(session):
                session.add(Category(name="Phones"))

    def test_email_required(self, session):
        with pytest.raises(ConstraintViolation):
            with integrity_guard(session):
                session.add(User(email=None, password_hash="x"))


class TestRanges:
    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range_rejected(self, session, shop, rating):
        with pytest.raises(ConstraintViolation):
            with integrity_guard(session):
                session.add(Review(product_id=shop["laptop"], user_id=shop["john"], rating=rating))

    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_rating_in_range_accepted(self, session, shop, rating):
        with integrity_guard(session):
            session.add(Review(product_id=shop["laptop"], user_id=shop["john"], rating=rating))
        session.commit()
        assert session.scalar(select(Review.rating)) == rating

    def test_negative_price_rejected(self, session):
        with pytest.raises(ConstraintViolation):
            with integrity_guard(session):
                session.add(Product(sku="SKU-NEG", name="Broken", price=Decimal("-0.01")))

    def test_negative_stock_rejected(self, session):
        with pytest.raises(ConstraintViolation):
            with integrity_guard(session):
                session.add(Product(sku="SKU-NEG", name="Broken", price=Decimal("1.00"), stock_qty=-1))

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, session, shop, quantity):
        order = create_order(session, shop["john"])
        session.commit()
        with pytest.raises(ConstraintViolation):
            with integrity_guard(session):
                session.add(OrderItem(order_id=order.id, product_id=shop["mouse"],
                                      quantity=quantity, unit_price=Decimal("25.50")))


class TestReferences:
    def test_review_for_missing_product_rejected(self, session, shop):
        with pytest.raises(InvalidReference):
            with integrity_guard(session):
                session.add(Review(product_id=9999, user_id=shop["john"], rating=3))

    def test_review_without_author_allowed(self, session, shop):
        with integrity_guard(session):
            session.add(Review(product_id=shop["mouse"], user_id=None, rating=4, comment="anonymous"))
        session.commit()
        assert session.scalar(select(Review.user_id)) is None
