from decimal import Decimal

from sqlalchemy import select

from storefront import queries, services
from storefront.models import Review, User
from storefront.seed import load_sample_data


def test_order_detail(session):
    stats = load_sample_data(session)

    detail = queries.q_order_detail(session, stats["order_id"])

    assert detail["order"]["status"] == "Pending"
    assert detail["order"]["user_email"] == "john.doe@example.com"
    assert detail["order"]["total_amount"] == 901.0
    assert [i["sku"] for i in detail["items"]] == ["SKU-1001", "SKU-2001"]
    assert detail["items"][1]["line_total"] == 51.0
    assert detail["summary"] == {"total_items": 3, "items_total": 901.0}
    assert detail["payment"]["method"] == "Card"
    assert detail["payment"]["status"] == "Completed"


def test_order_detail_missing(session):
    assert queries.q_order_detail(session, 404) is None


def test_user_overview(session):
    load_sample_data(session)
    john_id = session.scalar(select(User.id).where(User.email == "john.doe@example.com"))

    overview = queries.q_user_overview(session, john_id)
    assert overview["user"]["email"] == "john.doe@example.com"
    assert overview["profile"]["first_name"] == "John"
    assert overview["addresses"][0]["is_default"] is True
    assert overview["summary"] == {"order_count": 1, "total_spent": 901.0}

    assert queries.q_user_overview(session, 999) is None


def test_top_products(session, shop):
    services.create_order(session, shop["john"], items=[(shop["laptop"], 1), (shop["mouse"], 2)])
    services.create_order(session, shop["jane"], items=[(shop["mouse"], 4, Decimal("20.00"))])
    session.commit()

    rows = queries.q_top_products(session, limit=5)
    assert [r["sku"] for r in rows] == ["SKU-1001", "SKU-2001"]
    assert rows[1]["units_sold"] == 6
    assert rows[1]["revenue"] == 131.0


def test_product_ratings(session, shop):
    session.add_all([
        Review(product_id=shop["laptop"], user_id=shop["john"], rating=5),
        Review(product_id=shop["laptop"], user_id=shop["jane"], rating=4),
        Review(product_id=shop["mouse"], user_id=shop["jane"], rating=3),
    ])
    session.commit()

    rows = queries.q_product_ratings(session)
    assert [(r["sku"], r["avg_rating"], r["review_count"]) for r in rows] == [
        ("SKU-1001", 4.5, 2),
        ("SKU-2001", 3.0, 1),
    ]
    assert [r["sku"] for r in queries.q_product_ratings(session, min_reviews=2)] == ["SKU-1001"]


def test_category_tree(session, shop):
    tree = queries.q_category_tree(session)

    assert [c["name"] for c in tree] == ["Electronics"]
    assert tree[0]["product_count"] == 1
    assert [c["name"] for c in tree[0]["children"]] == ["Phones"]

    services.delete_category(session, shop["electronics"])
    session.commit()
    assert [c["name"] for c in queries.q_category_tree(session)] == ["Phones"]
