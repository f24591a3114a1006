# storefront/models.py
from __future__ import annotations

import enum

from sqlalchemy import (
    Column, String, Integer, Numeric, Boolean, Text, Date, DateTime,
    ForeignKey, Index, Table, CheckConstraint, Enum, func, true, false,
)
from sqlalchemy.orm import relationship
from .db import Base  # IMPORTANT: use the SAME Base created in storefront.db


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, enum.Enum):
    CARD = "Card"
    PAYPAL = "PayPal"
    BANK_TRANSFER = "BankTransfer"
    CASH = "Cash"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


def _enum_column_type(enum_cls, name: str) -> Enum:
    # VARCHAR + CHECK on every backend; stores the display value ("Pending"), not the member name
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


def _fk(target: str, ondelete: str) -> ForeignKey:
    return ForeignKey(target, ondelete=ondelete, onupdate="CASCADE")


# ----------------------- accounts -----------------------

class User(Base):
    __tablename__ = "users"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    email         = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at    = Column(DateTime, nullable=False, server_default=func.now())
    is_active     = Column(Boolean, nullable=False, default=True, server_default=true())

    profile   = relationship("Profile", back_populates="user", uselist=False,
                             cascade="all, delete-orphan", passive_deletes=True)
    addresses = relationship("Address", back_populates="user",
                             cascade="all, delete-orphan", passive_deletes=True)
    # RESTRICT: the ORM must never touch orders when a user goes away
    orders    = relationship("Order", back_populates="user", passive_deletes="all")
    reviews   = relationship("Review", back_populates="user", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


class Profile(Base):
    __tablename__ = "user_profiles"

    user_id       = Column(Integer, _fk("users.id", "CASCADE"), primary_key=True)
    first_name    = Column(String(100))
    last_name     = Column(String(100))
    phone         = Column(String(30))
    date_of_birth = Column(Date)

    user = relationship("User", back_populates="profile")


class Address(Base):
    __tablename__ = "addresses"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    user_id     = Column(Integer, _fk("users.id", "CASCADE"), nullable=False, index=True)
    line1       = Column(String(255), nullable=False)
    line2       = Column(String(255))
    city        = Column(String(100), nullable=False)
    state       = Column(String(100))
    postal_code = Column(String(20))
    country     = Column(String(100), nullable=False)
    is_default  = Column(Boolean, nullable=False, default=False, server_default=false())

    user = relationship("User", back_populates="addresses")


# ----------------------- catalog -----------------------

product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", Integer, _fk("products.id", "CASCADE"), primary_key=True),
    Column("category_id", Integer, _fk("categories.id", "CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    name        = Column(String(100), nullable=False, unique=True)
    description = Column(String(500))
    parent_id   = Column(Integer, _fk("categories.id", "SET NULL"), nullable=True)

    parent   = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent", passive_deletes=True)
    products = relationship("Product", secondary=product_categories,
                            back_populates="categories", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        CheckConstraint("stock_qty >= 0", name="ck_products_stock_nonneg"),
    )

    id          = Column(Integer, primary_key=True, autoincrement=True)
    sku         = Column(String(50), nullable=False, unique=True)
    name        = Column(String(255), nullable=False)
    description = Column(Text)
    price       = Column(Numeric(10, 2), nullable=False)
    stock_qty   = Column(Integer, nullable=False, default=0, server_default="0")
    is_active   = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at  = Column(DateTime, nullable=False, server_default=func.now())

    categories  = relationship("Category", secondary=product_categories,
                               back_populates="products", passive_deletes=True)
    order_items = relationship("OrderItem", back_populates="product", passive_deletes="all")
    reviews     = relationship("Review", back_populates="product",
                               cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Product {self.sku}>"


# ----------------------- orders -----------------------

class Order(Base):
    __tablename__ = "orders"

    id                  = Column(Integer, primary_key=True, autoincrement=True)
    user_id             = Column(Integer, _fk("users.id", "RESTRICT"), nullable=False, index=True)
    status              = Column(_enum_column_type(OrderStatus, "order_status"), nullable=False,
                                 default=OrderStatus.PENDING, server_default=OrderStatus.PENDING.value)
    order_date          = Column(DateTime, nullable=False, server_default=func.now())
    shipping_address_id = Column(Integer, _fk("addresses.id", "SET NULL"), nullable=True)
    # maintained by services.recompute_order_total, there is no trigger
    total_amount        = Column(Numeric(12, 2), nullable=False, default=0, server_default="0.00")

    user             = relationship("User", back_populates="orders")
    shipping_address = relationship("Address")
    items            = relationship("OrderItem", back_populates="order",
                                    cascade="all, delete-orphan", passive_deletes=True)
    payment          = relationship("Payment", back_populates="order", uselist=False,
                                    cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.status}>"


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price_nonneg"),
    )

    order_id   = Column(Integer, _fk("orders.id", "CASCADE"), primary_key=True)
    product_id = Column(Integer, _fk("products.id", "RESTRICT"), primary_key=True)
    quantity   = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    order   = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payments_amount_nonneg"),
    )

    id       = Column(Integer, primary_key=True, autoincrement=True)
    # unique: at most one payment per order
    order_id = Column(Integer, _fk("orders.id", "CASCADE"), nullable=False, unique=True)
    method   = Column(_enum_column_type(PaymentMethod, "payment_method"), nullable=False)
    amount   = Column(Numeric(12, 2), nullable=False)
    paid_at  = Column(DateTime, server_default=func.now())
    status   = Column(_enum_column_type(PaymentStatus, "payment_status"), nullable=False,
                      default=PaymentStatus.PENDING, server_default=PaymentStatus.PENDING.value)

    order = relationship("Order", back_populates="payment")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    id         = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, _fk("products.id", "CASCADE"), nullable=False)
    user_id    = Column(Integer, _fk("users.id", "SET NULL"), nullable=True)
    rating     = Column(Integer, nullable=False)
    comment    = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    product = relationship("Product", back_populates="reviews")
    user    = relationship("User", back_populates="reviews")


# Helpful indexes
Index("idx_products_name", Product.name)
Index("idx_orders_status", Order.status)
Index("idx_reviews_product", Review.product_id)
