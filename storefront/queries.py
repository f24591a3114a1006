# storefront/queries.py
from __future__ import annotations

from typing import Any, List, Dict, Optional
from sqlalchemy.orm import Session
from sqlalchemy import text


def _float(x: Any) -> float:
    return float(x or 0.0)


def _enum_str(x: Any) -> Any:
    return getattr(x, "value", x)


def q_order_detail(session: Session, order_id: int) -> Optional[Dict[str, Any]]:
    """
    One order with its items, its payment (if any) and a summary whose
    items_total is computed from the items, independent of the stored total.
    """
    order_sql = text("""
        SELECT
            o.id,
            o.user_id,
            o.status,
            o.order_date,
            o.shipping_address_id,
            o.total_amount,
            u.email AS user_email
        FROM orders o
        JOIN users u ON u.id = o.user_id
        WHERE o.id = :oid
    """)
    order = session.execute(order_sql, {"oid": order_id}).mappings().first()
    if not order:
        return None

    items_sql = text("""
        SELECT
            oi.product_id,
            p.sku,
            p.name,
            oi.quantity,
            oi.unit_price,
            oi.quantity * oi.unit_price AS line_total
        FROM order_items oi
        JOIN products p ON p.id = oi.product_id
        WHERE oi.order_id = :oid
        ORDER BY oi.product_id
    """)
    items = [
        {
            "product_id": r["product_id"],
            "sku": r["sku"],
            "name": r["name"],
            "quantity": int(r["quantity"]),
            "unit_price": _float(r["unit_price"]),
            "line_total": round(_float(r["line_total"]), 2),
        }
        for r in session.execute(items_sql, {"oid": order_id}).mappings().all()
    ]

    pay_sql = text("""
        SELECT id, method, amount, status, paid_at
        FROM payments
        WHERE order_id = :oid
    """)
    pay = session.execute(pay_sql, {"oid": order_id}).mappings().first()
    payment = None
    if pay:
        payment = {
            "id": pay["id"],
            "method": pay["method"],
            "amount": _float(pay["amount"]),
            "status": pay["status"],
            "paid_at": pay["paid_at"],
        }

    return {
        "order": {
            "id": order["id"],
            "user_id": order["user_id"],
            "user_email": order["user_email"],
            "status": _enum_str(order["status"]),
            "order_date": order["order_date"],
            "shipping_address_id": order["shipping_address_id"],
            "total_amount": _float(order["total_amount"]),
        },
        "items": items,
        "payment": payment,
        "summary": {
            "total_items": sum(i["quantity"] for i in items),
            "items_total": round(sum(i["line_total"] for i in items), 2),
        },
    }


def q_user_overview(session: Session, user_id: int) -> Optional[Dict[str, Any]]:
    """
    A user's account, profile, addresses and order totals.
    """
    user_sql = text("""
        SELECT
            u.id,
            u.email,
            u.is_active,
            u.created_at,
            p.first_name,
            p.last_name,
            p.phone
        FROM users u
        LEFT JOIN user_profiles p ON p.user_id = u.id
        WHERE u.id = :uid
    """)
    user = session.execute(user_sql, {"uid": user_id}).mappings().first()
    if not user:
        return None

    addr_sql = text("""
        SELECT id, line1, line2, city, state, postal_code, country, is_default
        FROM addresses
        WHERE user_id = :uid
        ORDER BY is_default DESC, id
    """)
    addresses = [dict(r) for r in session.execute(addr_sql, {"uid": user_id}).mappings().all()]
    for a in addresses:
        a["is_default"] = bool(a["is_default"])

    sum_sql = text("""
        SELECT
            COUNT(o.id)                       AS order_count,
            COALESCE(SUM(o.total_amount), 0)  AS total_spent
        FROM orders o
        WHERE o.user_id = :uid
    """)
    summary = session.execute(sum_sql, {"uid": user_id}).mappings().first() or {}

    return {
        "user": {
            "id": user["id"],
            "email": user["email"],
            "is_active": bool(user["is_active"]),
            "created_at": user["created_at"],
        },
        "profile": {
            "first_name": user["first_name"],
            "last_name": user["last_name"],
            "phone": user["phone"],
        },
        "addresses": addresses,
        "summary": {
            "order_count": int(summary.get("order_count", 0) or 0),
            "total_spent": round(_float(summary.get("total_spent")), 2),
        },
    }


def q_top_products(session: Session, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Products ranked by revenue from order items.
    """
    sql = text("""
        SELECT
            p.id,
            p.sku,
            p.name,
            COALESCE(SUM(oi.quantity), 0)                 AS units_sold,
            COALESCE(SUM(oi.quantity * oi.unit_price), 0) AS revenue
        FROM products p
        JOIN order_items oi ON oi.product_id = p.id
        GROUP BY p.id, p.sku, p.name
        ORDER BY revenue DESC, p.id
        LIMIT :limit
    """)
    rows = session.execute(sql, {"limit": limit}).mappings().all()
    return [
        {
            "product_id": r["id"],
            "sku": r["sku"],
            "name": r["name"],
            "units_sold": int(r["units_sold"] or 0),
            "revenue": round(_float(r["revenue"]), 2),
        }
        for r in rows
    ]


def q_product_ratings(session: Session, limit: int = 10, min_reviews: int = 1) -> List[Dict[str, Any]]:
    """
    Average rating per product, best first.
    """
    sql = text("""
        SELECT
            p.id,
            p.sku,
            p.name,
            COUNT(r.id)    AS review_count,
            AVG(r.rating)  AS avg_rating
        FROM products p
        JOIN reviews r ON r.product_id = p.id
        GROUP BY p.id, p.sku, p.name
        HAVING COUNT(r.id) >= :min_reviews
        ORDER BY avg_rating DESC, review_count DESC, p.id
        LIMIT :limit
    """)
    rows = session.execute(sql, {"limit": limit, "min_reviews": min_reviews}).mappings().all()
    return [
        {
            "product_id": r["id"],
            "sku": r["sku"],
            "name": r["name"],
            "review_count": int(r["review_count"]),
            "avg_rating": round(_float(r["avg_rating"]), 2),
        }
        for r in rows
    ]


def q_category_tree(session: Session) -> List[Dict[str, Any]]:
    """
    Categories nested under their parents, each with its product count.
    Categories whose parent was removed show up at the top level.
    """
    sql = text("""
        SELECT
            c.id,
            c.name,
            c.description,
            c.parent_id,
            COUNT(pc.product_id) AS product_count
        FROM categories c
        LEFT JOIN product_categories pc ON pc.category_id = c.id
        GROUP BY c.id, c.name, c.description, c.parent_id
        ORDER BY c.name
    """)
    rows = session.execute(sql).mappings().all()

    nodes: Dict[int, Dict[str, Any]] = {
        r["id"]: {
            "id": r["id"],
            "name": r["name"],
            "description": r["description"],
            "product_count": int(r["product_count"] or 0),
            "children": [],
        }
        for r in rows
    }
    roots: List[Dict[str, Any]] = []
    for r in rows:
        parent = nodes.get(r["parent_id"]) if r["parent_id"] is not None else None
        if parent is not None:
            parent["children"].append(nodes[r["id"]])
        else:
            roots.append(nodes[r["id"]])
    return roots
