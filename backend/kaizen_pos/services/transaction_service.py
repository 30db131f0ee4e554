"""
Transaction commit engine.

Turns a cart into exactly one immutable Transaction, or into nothing at all.

Commit sequence (one DB transaction, retried as a whole on lock/version
conflicts):
1. Re-read each product in input order with a row lock, check stock,
   decrement it, and snapshot name/SKU/category/price into a line.
2. Any missing product or short stock aborts and rolls back every decrement
   made so far in this commit.
3. Only after every line succeeds: compute subtotal, discount, VAT, total
   server-side (integer cents, half-up at each division).
4. Cash: require cash_received >= total and compute change.
5. Persist the Transaction with its line snapshots and commit.

Client-supplied money values are display hints; they are compared and
reported, never used.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..exceptions import (
    CashierNotFoundError,
    EmptyCartError,
    InsufficientPaymentError,
    InsufficientStockError,
    InvalidDiscountError,
    InvalidPaymentMethodError,
    PosError,
    TransactionNotFoundError,
)
from ..models import Transaction, TransactionLine, User
from ..models.sales import PAYMENT_METHODS
from ..money import apply_rate_bps
from ..time_utils import utcnow
from ..validation import ValidationError
from .concurrency import begin_write, run_with_retry
from .inventory_service import load_product_for_update, validate_quantity

CASH = "Cash"
IDEMPOTENCY_KEY_MAX_LENGTH = 64


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int
    # Client display values, kept only to name the item in errors
    name: str | None = None
    price_cents_hint: int | None = None


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    discount_cents: int
    vat_rate_bps: int
    vat_cents: int
    total_cents: int


@dataclass
class CommitResult:
    transaction: Transaction
    created: bool
    hint_mismatches: list[str] = field(default_factory=list)


def compute_totals(
    subtotal_cents: int,
    *,
    vat_rate_bps: int,
    discount_cents: int = 0,
    discount_bps: int | None = None,
) -> Totals:
    """
    Money math for one sale.

    discount is either a flat amount (discount_cents) or a rate of the
    subtotal (discount_bps, rounded half-up); it may not exceed the subtotal.
    vat = half_up((subtotal - discount) * rate); total = subtotal - discount + vat.
    """
    if discount_bps is not None:
        discount_cents = apply_rate_bps(subtotal_cents, discount_bps)
    if discount_cents < 0:
        raise InvalidDiscountError("Discount must be >= 0")
    if discount_cents > subtotal_cents:
        raise InvalidDiscountError(
            "Discount cannot exceed the subtotal",
            details={"discount_cents": discount_cents, "subtotal_cents": subtotal_cents},
        )

    taxable = subtotal_cents - discount_cents
    vat_cents = apply_rate_bps(taxable, vat_rate_bps)
    return Totals(
        subtotal_cents=subtotal_cents,
        discount_cents=discount_cents,
        vat_rate_bps=vat_rate_bps,
        vat_cents=vat_cents,
        total_cents=taxable + vat_cents,
    )


def _find_by_idempotency_key(key: str | None) -> Transaction | None:
    if not key:
        return None
    return db.session.query(Transaction).filter_by(idempotency_key=key).first()


def _compare_hints(items: list[CartItem], lines: list[TransactionLine], totals: Totals, hints: dict) -> list[str]:
    mismatches = []
    for item, line in zip(items, lines):
        if item.price_cents_hint is not None and item.price_cents_hint != line.unit_price_cents:
            mismatches.append(
                f"line {line.line_number} price {item.price_cents_hint} != {line.unit_price_cents}"
            )
    for key in ("subtotal_cents", "vat_cents", "total_cents"):
        hint = hints.get(key)
        actual = getattr(totals, key)
        if hint is not None and hint != actual:
            mismatches.append(f"{key} {hint} != {actual}")
    return mismatches


def commit_transaction(
    *,
    items: list[CartItem],
    payment_method: str,
    cashier_id: int,
    discount_cents: int = 0,
    discount_bps: int | None = None,
    cash_received_cents: int | None = None,
    idempotency_key: str | None = None,
    client_totals: dict | None = None,
    vat_rate_bps: int | None = None,
) -> CommitResult:
    """
    Validate and commit a multi-item sale as one all-or-nothing unit.

    Raises (nothing is written in any of these cases):
    - EmptyCartError, InvalidQuantityError, InvalidPaymentMethodError,
      InvalidDiscountError before any read
    - CashierNotFoundError, ProductNotFoundError, InsufficientStockError,
      InsufficientPaymentError during the commit
    - OperationalError / StaleDataError if retries are exhausted

    A repeated idempotency_key returns the stored transaction with
    created=False and does not touch stock.
    """
    if not items:
        raise EmptyCartError()
    items = [replace(item, quantity=validate_quantity(item.quantity)) for item in items]
    if payment_method not in PAYMENT_METHODS:
        raise InvalidPaymentMethodError(payment_method, PAYMENT_METHODS)
    if discount_cents and discount_bps is not None:
        raise InvalidDiscountError("Send either a discount amount or a discount percent, not both")
    if idempotency_key is not None and len(idempotency_key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise ValidationError(f"Idempotency key cannot exceed {IDEMPOTENCY_KEY_MAX_LENGTH} characters")
    if vat_rate_bps is None:
        vat_rate_bps = current_app.config.get("VAT_RATE_BPS", 1200)

    client_totals = client_totals or {}

    def _op() -> CommitResult:
        begin_write()

        existing = _find_by_idempotency_key(idempotency_key)
        if existing is not None:
            # Release the write lock; nothing was changed.
            db.session.commit()
            return CommitResult(transaction=existing, created=False)

        cashier = db.session.get(User, cashier_id)
        if cashier is None or not cashier.is_active:
            raise CashierNotFoundError(cashier_id)

        lines: list[TransactionLine] = []
        company_name = None
        for line_number, item in enumerate(items, start=1):
            product = load_product_for_update(item.product_id, item_name=item.name)
            if product.stock < item.quantity:
                raise InsufficientStockError(
                    product_id=product.id,
                    product_name=product.name,
                    requested=item.quantity,
                    available=product.stock,
                )
            product.stock = product.stock - item.quantity
            # Flush per item: version check fires now, and a repeated product
            # later in the cart re-reads the decremented value.
            db.session.flush()

            company_name = company_name or product.company_name
            lines.append(TransactionLine(
                line_number=line_number,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                category=product.category,
                quantity=item.quantity,
                unit_price_cents=product.price_cents,
                line_total_cents=product.price_cents * item.quantity,
            ))

        totals = compute_totals(
            sum(line.line_total_cents for line in lines),
            vat_rate_bps=vat_rate_bps,
            discount_cents=discount_cents,
            discount_bps=discount_bps,
        )

        if payment_method == CASH:
            received = totals.total_cents if cash_received_cents is None else cash_received_cents
            if received < totals.total_cents:
                raise InsufficientPaymentError(
                    total_cents=totals.total_cents,
                    cash_received_cents=received,
                )
            change = received - totals.total_cents
        else:
            received, change = 0, 0

        txn = Transaction(
            idempotency_key=idempotency_key or None,
            company_name=company_name or cashier.company_name,
            subtotal_cents=totals.subtotal_cents,
            discount_cents=totals.discount_cents,
            vat_rate_bps=totals.vat_rate_bps,
            vat_cents=totals.vat_cents,
            total_cents=totals.total_cents,
            payment_method=payment_method,
            cash_received_cents=received,
            change_cents=change,
            cashier_id=cashier.id,
            cashier_name=cashier.name,
            created_at=utcnow(),
            lines=lines,
        )
        db.session.add(txn)
        db.session.flush()
        txn.receipt_number = f"TXN-{txn.id:06d}"

        db.session.commit()
        return CommitResult(
            transaction=txn,
            created=True,
            hint_mismatches=_compare_hints(items, lines, totals, client_totals),
        )

    try:
        result = run_with_retry(_op)
    except PosError:
        db.session.rollback()
        raise
    except IntegrityError:
        # Lost a race on the same idempotency key: the other attempt won.
        db.session.rollback()
        existing = _find_by_idempotency_key(idempotency_key)
        if existing is None:
            raise
        return CommitResult(transaction=existing, created=False)
    except Exception:
        # Release the write lock before anything else uses this session.
        db.session.rollback()
        raise

    if result.created:
        txn = result.transaction
        current_app.logger.info(
            "Committed transaction %s total_cents=%s items=%s cashier_id=%s",
            txn.receipt_number,
            txn.total_cents,
            len(items),
            txn.cashier_id,
        )
    return result


def get_transaction(transaction_id: int) -> Transaction:
    txn = db.session.get(Transaction, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


def list_transactions(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    company_name: str | None = None,
) -> list[Transaction]:
    """Newest first; start/end are inclusive bounds on created_at."""
    q = db.session.query(Transaction)
    if start is not None:
        q = q.filter(Transaction.created_at >= start)
    if end is not None:
        q = q.filter(Transaction.created_at <= end)
    if company_name:
        q = q.filter(Transaction.company_name == company_name)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()
