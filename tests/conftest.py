import fnmatch
import os
from decimal import Decimal

# Set test environment before the package builds its module-level engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_PREFIX"] = "test"

import pytest

from storefront.db import make_engine, make_session_factory
from storefront.db_bootstrap import ensure_schema, drop_schema
from storefront.models import Address, Category, Product, Profile, User


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with foreign keys enforced."""
    eng = make_engine("sqlite://")
    ensure_schema(eng)
    yield eng
    drop_schema(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as s:
        yield s


@pytest.fixture
def shop(session):
    """A committed minimal store: two users, a category pair and two products."""
    john = User(email="john.doe@example.com", password_hash="hashed_pw_1")
    john.profile = Profile(first_name="John", last_name="Doe")
    john.addresses.append(Address(line1="12 Baker Street", city="Nairobi", country="Kenya", is_default=True))

    jane = User(email="jane.smith@example.com", password_hash="hashed_pw_2")

    electronics = Category(name="Electronics", description="Electronic gadgets and devices")
    phones = Category(name="Phones", description="Mobile phones", parent=electronics)

    laptop = Product(sku="SKU-1001", name="Laptop Model X", price=Decimal("850.00"), stock_qty=10)
    mouse = Product(sku="SKU-2001", name="Wireless Mouse", price=Decimal("25.50"), stock_qty=150)
    laptop.categories.append(electronics)

    session.add_all([john, jane, electronics, phones, laptop, mouse])
    session.commit()
    return {
        "john": john.id,
        "john_address": john.addresses[0].id,
        "jane": jane.id,
        "electronics": electronics.id,
        "phones": phones.id,
        "laptop": laptop.id,
        "mouse": mouse.id,
    }


class FakeRedis:
    """In-memory stand-in for the handful of Redis calls the app makes."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, k):
        return self.store.get(k)

    def set(self, k, v):
        self.store[k] = v

    def setex(self, k, ttl, v):
        self.store[k] = v
        self.ttls[k] = ttl

    def delete(self, k):
        self.store.pop(k, None)

    def scan_iter(self, match="*", count=None):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]

    def pipeline(self):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, r):
        self.r = r
        self.pending = []

    def delete(self, k):
        self.pending.append(k)

    def execute(self):
        for k in self.pending:
            self.r.delete(k)
        self.pending = []


@pytest.fixture
def fake_redis():
    return FakeRedis()
