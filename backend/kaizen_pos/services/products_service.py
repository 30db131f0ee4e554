# backend/kaizen_pos/services/products_service.py
"""
Products Service (inventory management)

- Products are tenant-scoped by company_name; callers filter explicitly.
- SKU and barcode are globally unique.
- Stock is set once at creation; afterwards it only moves through
  inventory_service.adjust_stock and transaction_service.commit_transaction.
- Deleting is a soft delete (is_active=False) so historical transaction
  lines keep a valid product reference.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..exceptions import ProductNotFoundError
from ..models import Product, StockAdjustment
from ..time_utils import utcnow
from ..validation import ConflictError

PRODUCT_MUTABLE_FIELDS = {
    "company_name", "sku", "barcode", "name", "category",
    "price_cents", "cost_cents", "low_stock_alert", "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique(*, sku: str | None, barcode: str | None, exclude_id: int | None = None) -> None:
    for column, value, label in (
        (Product.sku, sku, "SKU"),
        (Product.barcode, barcode, "barcode"),
    ):
        if value is None:
            continue
        q = db.session.query(Product.id).filter(column == value)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first() is not None:
            raise ConflictError(f"Product with this {label} already exists")


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    company_name: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    """
    Product listing, newest first.

    search matches name, SKU or barcode (case-insensitive substring).
    """
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if category and category != "All Categories":
        q = q.filter(Product.category == category)
    if company_name:
        q = q.filter(Product.company_name == company_name)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.barcode.ilike(pattern),
        ))
    return q.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFoundError(product_id)
    return p


def create_product(*, patch: dict, user_id: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    An opening stock > 0 is recorded as an "in" adjustment so the history
    chain starts from zero.
    """
    _ensure_unique(sku=patch.get("sku"), barcode=patch.get("barcode"))

    opening_stock = patch.get("stock") or 0
    p = Product(stock=opening_stock)
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.flush()  # ensure p.id exists before the history row

    if opening_stock > 0:
        db.session.add(StockAdjustment(
            product_id=p.id,
            type="in",
            quantity=opening_stock,
            previous_stock=0,
            new_stock=opening_stock,
            note="Opening stock",
            created_by_user_id=user_id,
            created_at=utcnow(),
        ))

    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    p = get_product(product_id)
    _ensure_unique(
        sku=patch.get("sku") if patch.get("sku") != p.sku else None,
        barcode=patch.get("barcode") if patch.get("barcode") != p.barcode else None,
        exclude_id=p.id,
    )
    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: int) -> Product:
    """Soft-delete: preserve IDs and historical references."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
        db.session.commit()
    return p


def list_categories(company_name: str | None = None) -> list[str]:
    q = db.session.query(Product.category).filter(Product.is_active.is_(True))
    if company_name:
        q = q.filter(Product.company_name == company_name)
    return [row[0] for row in q.distinct().order_by(Product.category.asc()).all()]
