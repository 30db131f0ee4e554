# Overview: Stock adjustment engine and stock history reads.

# backend/kaizen_pos/services/inventory_service.py

from __future__ import annotations

import re

from flask import current_app

from ..extensions import db
from ..exceptions import (
    InsufficientStockError,
    InvalidAdjustmentTypeError,
    InvalidQuantityError,
    ProductNotFoundError,
)
from ..models import Product, StockAdjustment
from ..models.inventory import ADJUSTMENT_TYPES
from ..time_utils import utcnow
from ..validation import MAX_QUANTITY
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Stock Invariants (authoritative)

- Product.stock is the current on-hand count and is never negative.
- Every manual movement appends exactly one StockAdjustment row in the same
  DB transaction that updates Product.stock; neither write lands without the
  other.
- Adjustment rows are append-only (see immutability.py).
- The read-check-write of Product.stock is serialized per product:
  begin_write() on SQLite, SELECT ... FOR UPDATE elsewhere, and the
  Product.version_id optimistic lock as a backstop (StaleDataError -> retry).

Adjustment semantics:
- in:          new = previous + quantity
- out:         new = previous - quantity, rejected if that would be < 0
- adjustment:  new = quantity (absolute level, not a delta)
quantity must be a positive integer for every type, and no stock level or
quantity may exceed MAX_QUANTITY (the range of a 32-bit INTEGER column).
"""

_DIGITS = re.compile(r"[0-9]+")


def validate_quantity(quantity, *, field: str = "quantity") -> int:
    """Integer in 1..MAX_QUANTITY or InvalidQuantityError (bools and floats rejected)."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        if isinstance(quantity, str) and _DIGITS.fullmatch(quantity.strip()):
            quantity = int(quantity.strip())
        else:
            raise InvalidQuantityError(f"{field} must be a positive integer", quantity=quantity)
    if quantity <= 0:
        raise InvalidQuantityError(f"{field} must be a positive integer", quantity=quantity)
    if quantity > MAX_QUANTITY:
        raise InvalidQuantityError(f"{field} cannot exceed {MAX_QUANTITY}", quantity=quantity)
    return quantity


def compute_new_stock(adjustment_type: str, previous_stock: int, quantity: int) -> int:
    if adjustment_type == "in":
        return previous_stock + quantity
    if adjustment_type == "out":
        return previous_stock - quantity
    if adjustment_type == "adjustment":
        return quantity
    raise InvalidAdjustmentTypeError(adjustment_type)


def load_product_for_update(product_id, *, item_name: str | None = None) -> Product:
    """
    Re-read a sellable product with a row lock and fresh attribute values.

    Inactive (soft-deleted) products are treated as missing.
    """
    product = lock_for_update(
        db.session.query(Product).filter_by(id=product_id)
    ).populate_existing().first()
    if product is None or not product.is_active:
        raise ProductNotFoundError(product_id, item_name)
    return product


def adjust_stock(
    *,
    product_id: int,
    adjustment_type: str,
    quantity,
    note: str | None = None,
    user_id: int | None = None,
) -> tuple[Product, StockAdjustment]:
    """
    Apply one inventory movement to one product and record it.

    Returns (product, adjustment). Validation happens before any write;
    InsufficientStockError on "out" leaves stock and history untouched.
    """
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise InvalidAdjustmentTypeError(adjustment_type)
    quantity = validate_quantity(quantity)
    if note is not None:
        note = str(note).strip()[:255] or None

    def _op():
        begin_write()
        product = load_product_for_update(product_id)

        previous_stock = product.stock
        new_stock = compute_new_stock(adjustment_type, previous_stock, quantity)
        if new_stock < 0:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                requested=quantity,
                available=previous_stock,
            )
        if new_stock > MAX_QUANTITY:
            raise InvalidQuantityError(
                f"Stock cannot exceed {MAX_QUANTITY}",
                quantity=quantity,
            )

        product.stock = new_stock
        adjustment = StockAdjustment(
            product_id=product.id,
            type=adjustment_type,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            note=note,
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(adjustment)
        db.session.commit()
        return product, adjustment

    try:
        product, adjustment = run_with_retry(_op)
    except Exception:
        # Release the write lock before anything else uses this session.
        db.session.rollback()
        raise

    current_app.logger.info(
        "Stock adjusted product_id=%s type=%s quantity=%s %s -> %s",
        product.id,
        adjustment.type,
        adjustment.quantity,
        adjustment.previous_stock,
        adjustment.new_stock,
    )
    return product, adjustment


def get_stock_history(
    *,
    product_id: int,
    limit: int | None = None,
    offset: int = 0,
) -> list[StockAdjustment]:
    """
    Most-recent-first tail of a product's stock history.

    limit defaults to STOCK_HISTORY_DEFAULT_LIMIT (50) and is clamped to
    STOCK_HISTORY_MAX_LIMIT.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)

    default_limit = current_app.config.get("STOCK_HISTORY_DEFAULT_LIMIT", 50)
    max_limit = current_app.config.get("STOCK_HISTORY_MAX_LIMIT", 200)
    limit = default_limit if limit is None else max(1, min(limit, max_limit))
    offset = max(offset or 0, 0)

    return (
        db.session.query(StockAdjustment)
        .filter(StockAdjustment.product_id == product_id)
        .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_low_stock(company_name: str | None = None) -> list[Product]:
    """Active products at or below their low-stock threshold."""
    q = db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock <= Product.low_stock_alert,
    )
    if company_name:
        q = q.filter(Product.company_name == company_name)
    return q.order_by(Product.stock.asc(), Product.name.asc()).all()
