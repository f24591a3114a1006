# storefront/seed.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .db import Base
from .models import (
    Address, Category, OrderStatus, PaymentMethod, PaymentStatus, Product,
    Profile, User,
)
from .errors import integrity_guard
from .services import create_order, record_payment

logger = logging.getLogger(__name__)


# ----------------------- sample data -----------------------

SAMPLE_USERS = [
    # email, password hash, (first, last, phone), (line1, city, country)
    ("john.doe@example.com", "hashed_pw_1", ("John", "Doe", "0711000001"), ("12 Baker Street", "Nairobi", "Kenya")),
    ("jane.smith@example.com", "hashed_pw_2", ("Jane", "Smith", "0711000002"), ("55 Market Ave", "Nakuru", "Kenya")),
    ("emily.clark@example.com", "hashed_pw_3", ("Emily", "Clark", "0711000003"), ("7 River Road", "Eldoret", "Kenya")),
]

SAMPLE_CATEGORIES = [
    ("Electronics", "Electronic gadgets and devices"),
    ("Accessories", "Computer accessories"),
    ("Phones", "Mobile phones"),
]

SAMPLE_PRODUCTS = [
    # sku, name, description, price, stock, category name
    ("SKU-1001", "Laptop Model X", "15-inch laptop", Decimal("850.00"), 10, "Electronics"),
    ("SKU-2001", "Wireless Mouse", "Ergonomic wireless mouse", Decimal("25.50"), 150, "Accessories"),
    ("SKU-3001", "Smartphone A1", "5.5-inch smartphone", Decimal("299.99"), 50, "Phones"),
]

# first user's order: (sku, quantity, unit price)
SAMPLE_ORDER_ITEMS = [
    ("SKU-1001", 1, Decimal("850.00")),
    ("SKU-2001", 2, Decimal("25.50")),
]


# ----------------------- data ops -----------------------

def wipe_all_data(session: Session) -> None:
    # children before parents so RESTRICT rules never fire
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(delete(table))
    session.commit()
    # identities may be handed out again by the engine
    session.expunge_all()
    logger.info("all store data wiped")


def load_sample_data(session: Session, reset: bool = True) -> Dict[str, Any]:
    """
    Insert the sample store: users with profiles and default addresses,
    categories, products, one order for the first user with its total
    recomputed, and a completed card payment for that total.

    Generated ids are always read back from the flushed rows.
    """
    if reset:
        wipe_all_data(session)

    stats: Dict[str, Any] = {}

    # a non-reset load over existing rows fails here with DuplicateRecord
    with integrity_guard(session):
        users = []
        for email, pw_hash, (first, last, phone), (line1, city, country) in SAMPLE_USERS:
            user = User(email=email, password_hash=pw_hash)
            user.profile = Profile(first_name=first, last_name=last, phone=phone)
            user.addresses.append(Address(line1=line1, city=city, country=country, is_default=True))
            users.append(user)
        session.add_all(users)

        categories = {name: Category(name=name, description=desc) for name, desc in SAMPLE_CATEGORIES}
        session.add_all(categories.values())

        products = {}
        for sku, name, desc, price, stock, cat_name in SAMPLE_PRODUCTS:
            product = Product(sku=sku, name=name, description=desc, price=price, stock_qty=stock)
            product.categories.append(categories[cat_name])
            products[sku] = product
        session.add_all(products.values())

    buyer = users[0]
    order = create_order(
        session,
        user_id=buyer.id,
        items=[(products[sku].id, qty, price) for sku, qty, price in SAMPLE_ORDER_ITEMS],
        shipping_address_id=buyer.addresses[0].id,
        status=OrderStatus.PENDING,
    )
    payment = record_payment(session, order.id, PaymentMethod.CARD, status=PaymentStatus.COMPLETED)
    session.commit()

    stats.update({
        "users_loaded": len(users),
        "categories_loaded": len(categories),
        "products_loaded": len(products),
        "orders_loaded": 1,
        "order_id": order.id,
        "order_total": float(order.total_amount),
        "payment_id": payment.id,
    })
    logger.info("sample data loaded: %s", stats)
    return stats


if __name__ == "__main__":
    from .db import SessionLocal
    from .db_bootstrap import ensure_schema
    from .settings import settings

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ensure_schema()
    with SessionLocal() as session:
        load_sample_data(session, reset=True)
