# storefront/services.py
"""
Application-level operations on the store schema.

The engine enforces uniqueness, CHECK ranges and the referential actions.
What it does not do is keep `orders.total_amount` in step with the items,
so every function that changes items recomputes the total explicitly.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional, Tuple, Union

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from .errors import NotFound, integrity_guard
from .models import (
    Address, Category, Order, OrderItem, OrderStatus, Payment, PaymentMethod,
    PaymentStatus, Product, User,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# (product_id, quantity) or (product_id, quantity, unit_price)
ItemSpec = Union[Tuple[int, int], Tuple[int, int, Decimal]]


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT)


def _get_or_404(session: Session, model, ident):
    obj = session.get(model, ident)
    if obj is None:
        raise NotFound(f"{model.__name__} {ident} not found")
    return obj


# ----------------------- order totals -----------------------

def compute_order_total(session: Session, order_id: int) -> Decimal:
    """Sum of quantity * unit_price over the order's items (0.00 when empty)."""
    stmt = (
        select(func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0))
        .where(OrderItem.order_id == order_id)
    )
    return _money(session.execute(stmt).scalar_one())


def recompute_order_total(session: Session, order_id: int) -> Decimal:
    order = _get_or_404(session, Order, order_id)
    session.flush()
    total = compute_order_total(session, order_id)
    order.total_amount = total
    session.flush()
    logger.debug("order %s total recomputed -> %s", order_id, total)
    return total


# ----------------------- orders -----------------------

def add_order_item(
    session: Session,
    order_id: int,
    product_id: int,
    quantity: int,
    unit_price: Optional[Decimal] = None,
) -> OrderItem:
    """Add a line to an order. Unit price defaults to the product's current price."""
    _get_or_404(session, Order, order_id)
    product = _get_or_404(session, Product, product_id)
    price = product.price if unit_price is None else unit_price

    with integrity_guard(session):
        item = OrderItem(order_id=order_id, product_id=product_id,
                         quantity=quantity, unit_price=price)
        session.add(item)
    recompute_order_total(session, order_id)
    return item


def create_order(
    session: Session,
    user_id: int,
    items: Iterable[ItemSpec] = (),
    shipping_address_id: Optional[int] = None,
    status: OrderStatus = OrderStatus.PENDING,
) -> Order:
    """
    Insert an order and its items.

    The order is flushed first so its generated id is read back from the
    database and used for the items. Every product is looked up before
    anything is written, so a missing product leaves no partial order.
    """
    items = list(items)
    for spec in items:
        _get_or_404(session, Product, spec[0])

    with integrity_guard(session):
        order = Order(user_id=user_id, status=status,
                      shipping_address_id=shipping_address_id,
                      total_amount=Decimal("0.00"))
        session.add(order)

    for spec in items:
        product_id, quantity = spec[0], spec[1]
        unit_price = spec[2] if len(spec) > 2 else None
        add_order_item(session, order.id, product_id, quantity, unit_price)

    recompute_order_total(session, order.id)
    logger.info("order %s created for user %s total=%s", order.id, user_id, order.total_amount)
    return order


def record_payment(
    session: Session,
    order_id: int,
    method: PaymentMethod,
    amount: Optional[Decimal] = None,
    status: PaymentStatus = PaymentStatus.PENDING,
) -> Payment:
    """Attach the (single) payment to an order. Amount defaults to the order total."""
    order = _get_or_404(session, Order, order_id)
    with integrity_guard(session):
        payment = Payment(
            order_id=order_id,
            method=method,
            amount=order.total_amount if amount is None else amount,
            status=status,
        )
        session.add(payment)
    logger.info("payment %s recorded for order %s (%s, %s)", payment.id, order_id, method.value, status.value)
    return payment


# ----------------------- addresses -----------------------

def set_default_address(session: Session, user_id: int, address_id: int) -> Address:
    address = _get_or_404(session, Address, address_id)
    if address.user_id != user_id:
        raise NotFound(f"Address {address_id} not found for user {user_id}")

    session.execute(
        update(Address)
        .where(Address.user_id == user_id, Address.id != address_id)
        .values(is_default=False)
    )
    address.is_default = True
    session.flush()
    return address


# ----------------------- deletes -----------------------
# One DELETE per call; CASCADE / RESTRICT / SET NULL are applied by the engine.

def _delete(session: Session, model, ident: int) -> None:
    pk = model.__mapper__.primary_key[0]
    with integrity_guard(session, deleting=True):
        result = session.execute(
            delete(model).where(pk == ident).execution_options(synchronize_session=False)
        )
    if result.rowcount == 0:
        raise NotFound(f"{model.__name__} {ident} not found")
    # dependents changed underneath the identity map
    session.expire_all()
    logger.info("deleted %s %s", model.__name__, ident)


def delete_user(session: Session, user_id: int) -> None:
    """Cascades profile and addresses, nulls review authors, refused while orders exist."""
    _delete(session, User, user_id)


def delete_address(session: Session, address_id: int) -> None:
    """Orders shipped to the address keep existing with no shipping address."""
    _delete(session, Address, address_id)


def delete_category(session: Session, category_id: int) -> None:
    """Child categories become top-level; product links are removed."""
    _delete(session, Category, category_id)


def delete_product(session: Session, product_id: int) -> None:
    """Cascades reviews and category links, refused while order items reference it."""
    _delete(session, Product, product_id)


def delete_order(session: Session, order_id: int) -> None:
    """Cascades items and payment."""
    _delete(session, Order, order_id)
