from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("Cash", "QR Code", "Card")


class Transaction(db.Model):
    """
    A committed sale. Financial record: written once, never updated or deleted.

    Money invariants (all integer cents):
    - total = subtotal - discount + vat
    - vat = half_up((subtotal - discount) * vat_rate_bps / 10000)
    - Cash: change = cash_received - total, cash_received >= total
    - non-Cash: cash_received = change = 0

    The only post-insert write allowed is the one-time receipt_number
    assignment (see immutability.py).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_transactions_receipt_number"),
        db.UniqueConstraint("idempotency_key", name="uq_transactions_idempotency_key"),
        db.CheckConstraint("discount_cents >= 0", name="ck_transactions_discount"),
        db.CheckConstraint(
            "total_cents = subtotal_cents - discount_cents + vat_cents",
            name="ck_transactions_total",
        ),
        db.CheckConstraint("change_cents >= 0", name="ck_transactions_change"),
        db.Index("ix_transactions_company_created", "company_name", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable receipt number (e.g., "TXN-000123")
    receipt_number = db.Column(db.String(32), nullable=True)

    # Client-generated key per checkout attempt; replays return the original row
    idempotency_key = db.Column(db.String(64), nullable=True)

    company_name = db.Column(db.String(120), nullable=False, default="Unknown")

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    vat_rate_bps = db.Column(db.Integer, nullable=False)
    vat_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    cash_received_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    # Weak reference: lookup only, no cascade
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    cashier_name = db.Column(db.String(120), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )

    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        order_by="TransactionLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} receipt={self.receipt_number!r} total_cents={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "company_name": self.company_name,
            "items": [line.to_dict() for line in self.lines],
            "subtotal": from_cents(self.subtotal_cents),
            "subtotal_cents": self.subtotal_cents,
            "discount": from_cents(self.discount_cents),
            "discount_cents": self.discount_cents,
            "vat_rate_bps": self.vat_rate_bps,
            "vat": from_cents(self.vat_cents),
            "vat_cents": self.vat_cents,
            "total": from_cents(self.total_cents),
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "cash_received": from_cents(self.cash_received_cents),
            "cash_received_cents": self.cash_received_cents,
            "change": from_cents(self.change_cents),
            "change_cents": self.change_cents,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "idempotency_key": self.idempotency_key,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLine(db.Model):
    """
    Immutable snapshot of one sold product.

    name/sku/category/price are copied at commit time so receipts and reports
    do not depend on the mutable product row. product_id stays as a weak
    reference for joins.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "line_number", name="uq_transaction_lines_number"),
        db.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity"),
        db.CheckConstraint(
            "line_total_cents = unit_price_cents * quantity",
            name="ck_transaction_lines_total",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(20), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("Transaction", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "product": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "category": self.category,
            "quantity": self.quantity,
            "price": from_cents(self.unit_price_cents),
            "price_cents": self.unit_price_cents,
            "subtotal": from_cents(self.line_total_cents),
            "subtotal_cents": self.line_total_cents,
        }
