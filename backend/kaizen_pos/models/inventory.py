from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z, utcnow

ADJUSTMENT_TYPES = ("in", "out", "adjustment")


class Product(db.Model):
    """
    Product master data plus the current sellable stock.

    STOCK INVARIANT: stock >= 0 at all times. Enforced by the services on every
    mutation path (stock adjustment and transaction commit) and by a CHECK
    constraint.

    CONCURRENCY: version_id is an optimistic lock. Any UPDATE issued through the
    ORM carries "WHERE version_id = :seen"; an interleaved writer turns into a
    StaleDataError that the caller retries from a fresh read.

    Stock is never edited through the generic product update path; it only
    moves through inventory_service.adjust_stock and
    transaction_service.commit_transaction.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("low_stock_alert >= 0", name="ck_products_low_stock_alert"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price"),
        db.CheckConstraint("cost_cents >= 0", name="ck_products_cost"),
        db.Index("ix_products_company_category", "company_name", "category"),
        db.Index("ix_products_company_active", "company_name", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    company_name = db.Column(db.String(120), nullable=False, default="Unknown")

    sku = db.Column(db.String(20), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="Other")

    # Authoritative storage in cents (API formats currency values for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_alert = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.stock}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_alert

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "category": self.category,
            "price": from_cents(self.price_cents),
            "price_cents": self.price_cents,
            "cost": from_cents(self.cost_cents),
            "cost_cents": self.cost_cents,
            "stock": self.stock,
            "low_stock_alert": self.low_stock_alert,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockAdjustment(db.Model):
    """
    Append-only stock history, one row per manual inventory movement.

    Kept out of the product row so history grows without bloating the product;
    read through a (product_id, created_at) index as a most-recent-first tail.

    Chain rules:
    - in:          new_stock = previous_stock + quantity
    - out:         new_stock = previous_stock - quantity
    - adjustment:  new_stock = quantity (quantity is the absolute level)
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.Index("ix_stock_adjustments_product_created", "product_id", "created_at"),
        db.CheckConstraint("type IN ('in', 'out', 'adjustment')", name="ck_stock_adjustments_type"),
        db.CheckConstraint("quantity > 0", name="ck_stock_adjustments_quantity"),
        db.CheckConstraint("previous_stock >= 0 AND new_stock >= 0", name="ck_stock_adjustments_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_adjustments", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "note": self.note,
            "created_by_user_id": self.created_by_user_id,
            "timestamp": to_utc_z(self.created_at),
        }
