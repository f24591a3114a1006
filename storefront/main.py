# storefront/main.py
from __future__ import annotations

# FastAPI
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Stdlib
from decimal import Decimal
from time import perf_counter
import logging
import math

# SQLAlchemy / Redis
from sqlalchemy.orm import Session
from sqlalchemy import text
from redis.exceptions import RedisError

# Internal modules
from .db import SessionLocal
from .db_bootstrap import ensure_schema
from .settings import settings
from .cache import redis_client, key, get_json, set_json, delete_prefix
from .errors import StoreError, NotFound, DuplicateRecord, DeleteRestricted, ConstraintViolation, InvalidReference
from .models import PaymentMethod, PaymentStatus
from .seed import load_sample_data, wipe_all_data
from . import queries, services

logger = logging.getLogger(__name__)

# -------------------------------------------------------
# App setup
# -------------------------------------------------------
app = FastAPI(title="Storefront", version="1.0.0")

@app.on_event("startup")
def boot():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ensure_schema()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR = {
    NotFound: 404,
    DuplicateRecord: 409,
    DeleteRestricted: 409,
    ConstraintViolation: 422,
    InvalidReference: 422,
}

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    status = _STATUS_BY_ERROR.get(type(exc), 400)
    detail = exc.message
    if type(exc) is StoreError:
        # unclassified: the message is raw driver text
        logger.error("unclassified store error on %s: %s", request.url.path, exc.message)
        detail = "The request could not be completed"
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": exc.code, "detail": detail},
    )

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def _ms(start: float) -> int:
    return math.ceil((perf_counter() - start) * 1000)

def _wrap(payload: dict, started: float, *, cached: bool | None = None, ttl: int | None = None) -> dict:
    payload.setdefault("elapsed_ms", _ms(started))
    if cached is not None:
        payload["cached"] = cached
    payload["ttl_seconds"] = ttl if ttl is not None else None
    return payload

def _invalidate_reports() -> None:
    try:
        delete_prefix(redis_client(), key("report", ""))
    except RedisError as e:
        logger.warning("could not clear report cache: %s", e)

# -------------------------------------------------------
# 0) Health
# -------------------------------------------------------
@app.get("/api/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"success": True, "database": "ok"}

# -------------------------------------------------------
# 1) Sample data
# -------------------------------------------------------
class LoadSampleRequest(BaseModel):
    reset: bool = True

@app.post("/api/load-sample-data")
def load_sample(payload: LoadSampleRequest | None = None, db: Session = Depends(get_db)):
    body = payload or LoadSampleRequest()
    stats = load_sample_data(db, reset=body.reset)
    _invalidate_reports()
    return {
        "success": True,
        "message": f"Sample load complete. Loaded {stats['users_loaded']} users, {stats['products_loaded']} products, {stats['orders_loaded']} order.",
        "stats": stats,
    }

@app.post("/api/clear-data")
def clear_data(db: Session = Depends(get_db)):
    wipe_all_data(db)
    _invalidate_reports()
    return {"success": True}

# -------------------------------------------------------
# 2) Orders
# -------------------------------------------------------
class PaymentRequest(BaseModel):
    method: PaymentMethod
    amount: Decimal | None = Field(default=None, ge=0)
    status: PaymentStatus = PaymentStatus.PENDING

@app.get("/api/orders/{order_id}")
def order_detail(order_id: int, db: Session = Depends(get_db)):
    detail = queries.q_order_detail(db, order_id)
    if detail is None:
        raise NotFound(f"Order {order_id} not found")
    return detail

@app.post("/api/orders/{order_id}/recompute-total")
def recompute_total(order_id: int, db: Session = Depends(get_db)):
    total = services.recompute_order_total(db, order_id)
    db.commit()
    _invalidate_reports()
    return {"success": True, "order_id": order_id, "total_amount": float(total)}

@app.post("/api/orders/{order_id}/payments", status_code=201)
def create_payment(order_id: int, payload: PaymentRequest, db: Session = Depends(get_db)):
    payment = services.record_payment(db, order_id, payload.method, payload.amount, payload.status)
    db.commit()
    return {
        "success": True,
        "payment": {
            "id": payment.id,
            "order_id": payment.order_id,
            "method": payment.method.value,
            "amount": float(payment.amount),
            "status": payment.status.value,
        },
    }

# -------------------------------------------------------
# 3) Users & catalog
# -------------------------------------------------------
@app.get("/api/users/{user_id}")
def user_overview(user_id: int, db: Session = Depends(get_db)):
    overview = queries.q_user_overview(db, user_id)
    if overview is None:
        raise NotFound(f"User {user_id} not found")
    return overview

@app.get("/api/categories/tree")
def category_tree(db: Session = Depends(get_db)):
    return {"categories": queries.q_category_tree(db)}

# -------------------------------------------------------
# 4) Reports (uncached & cached)
# -------------------------------------------------------
@app.get("/api/top-products")
def top_products(limit: int = 10, db: Session = Depends(get_db)):
    started = perf_counter()
    items = queries.q_top_products(db, limit=limit)
    return _wrap({"items": items}, started, cached=False)

@app.get("/api/top-products-cached")
def top_products_cached(limit: int = 10, db: Session = Depends(get_db)):
    started = perf_counter()
    rc = redis_client()
    k = key("report", "top-products", limit)

    cached = get_json(rc, k)
    if cached is not None:
        return _wrap({"items": cached}, started, cached=True, ttl=settings.CACHE_TTL)

    items = queries.q_top_products(db, limit=limit)
    set_json(rc, k, items, ttl=settings.CACHE_TTL)
    return _wrap({"items": items}, started, cached=False, ttl=settings.CACHE_TTL)

@app.get("/api/product-ratings")
def product_ratings(limit: int = 10, min_reviews: int = 1, db: Session = Depends(get_db)):
    started = perf_counter()
    items = queries.q_product_ratings(db, limit=limit, min_reviews=min_reviews)
    return _wrap({"items": items}, started, cached=False)

@app.get("/api/product-ratings-cached")
def product_ratings_cached(limit: int = 10, min_reviews: int = 1, db: Session = Depends(get_db)):
    started = perf_counter()
    rc = redis_client()
    k = key("report", "product-ratings", limit, min_reviews)

    cached = get_json(rc, k)
    if cached is not None:
        return _wrap({"items": cached}, started, cached=True, ttl=settings.CACHE_TTL)

    items = queries.q_product_ratings(db, limit=limit, min_reviews=min_reviews)
    set_json(rc, k, items, ttl=settings.CACHE_TTL)
    return _wrap({"items": items}, started, cached=False, ttl=settings.CACHE_TTL)

# -------------------------------------------------------
# 5) Deletes (referential actions applied by the database)
# -------------------------------------------------------
def _delete_and_commit(fn, db: Session, ident: int) -> dict:
    fn(db, ident)
    db.commit()
    _invalidate_reports()
    return {"success": True, "deleted": ident}

@app.delete("/api/users/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    return _delete_and_commit(services.delete_user, db, user_id)

@app.delete("/api/addresses/{address_id}")
def delete_address(address_id: int, db: Session = Depends(get_db)):
    return _delete_and_commit(services.delete_address, db, address_id)

@app.delete("/api/categories/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    return _delete_and_commit(services.delete_category, db, category_id)

@app.delete("/api/products/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    return _delete_and_commit(services.delete_product, db, product_id)

@app.delete("/api/orders/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    return _delete_and_commit(services.delete_order, db, order_id)
