# Overview: Read-only aggregations over committed transactions.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Transaction, TransactionLine
from ..money import from_cents
from ..time_utils import period_start, start_of_day, to_utc_z, utcnow

TOP_PRODUCTS_LIMIT = 10


class ReportError(ValueError):
    """Raised when report parameters are invalid."""


def _scoped(query, company_name: str | None):
    if company_name:
        query = query.filter(Transaction.company_name == company_name)
    return query


def dashboard_stats(*, company_name: str | None = None, now: datetime | None = None) -> dict:
    now = now or utcnow()
    today = start_of_day(now)

    sales = _scoped(
        db.session.query(
            func.coalesce(func.sum(Transaction.total_cents), 0),
            func.count(Transaction.id),
        ).filter(Transaction.created_at >= today),
        company_name,
    ).one()

    products = db.session.query(Product).filter(Product.is_active.is_(True))
    if company_name:
        products = products.filter(Product.company_name == company_name)
    low_stock = products.filter(Product.stock <= Product.low_stock_alert).count()

    today_sales_cents = int(sales[0] or 0)
    return {
        "today_sales": from_cents(today_sales_cents),
        "today_sales_cents": today_sales_cents,
        "transactions": int(sales[1] or 0),
        "low_stock_items": low_stock,
        "active_products": products.count(),
    }


def sales_report(
    *,
    period: str = "week",
    company_name: str | None = None,
    now: datetime | None = None,
) -> dict:
    try:
        start = period_start(period, now)
    except ValueError as exc:
        raise ReportError(str(exc))

    totals = _scoped(
        db.session.query(
            func.coalesce(func.sum(Transaction.total_cents), 0).label("total"),
            func.count(Transaction.id).label("count"),
        ).filter(Transaction.created_at >= start),
        company_name,
    ).one()
    total_cents = int(totals.total or 0)
    count = int(totals.count or 0)
    # nearest-cent rounding (half-up)
    avg_cents = (total_cents + count // 2) // count if count else 0

    lines = _scoped(
        db.session.query(TransactionLine)
        .join(Transaction, TransactionLine.transaction_id == Transaction.id)
        .filter(Transaction.created_at >= start),
        company_name,
    )

    category_rows = (
        lines.with_entities(
            func.coalesce(TransactionLine.category, "Other").label("category"),
            func.sum(TransactionLine.line_total_cents).label("revenue"),
        )
        .group_by("category")
        .order_by(func.sum(TransactionLine.line_total_cents).desc(), "category")
        .all()
    )

    product_rows = (
        lines.with_entities(
            TransactionLine.product_id,
            func.max(TransactionLine.product_name).label("name"),
            func.sum(TransactionLine.line_total_cents).label("revenue"),
            func.sum(TransactionLine.quantity).label("quantity"),
        )
        .group_by(TransactionLine.product_id)
        .order_by(func.sum(TransactionLine.line_total_cents).desc(), TransactionLine.product_id)
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    method_rows = _scoped(
        db.session.query(
            Transaction.payment_method,
            func.sum(Transaction.total_cents),
            func.count(Transaction.id),
        )
        .filter(Transaction.created_at >= start)
        .group_by(Transaction.payment_method),
        company_name,
    ).all()

    day = func.date(Transaction.created_at)
    daily_rows = _scoped(
        db.session.query(day.label("day"), func.sum(Transaction.total_cents))
        .filter(Transaction.created_at >= start)
        .group_by(day)
        .order_by(day),
        company_name,
    ).all()

    return {
        "period": period,
        "start": to_utc_z(start),
        "total_sales": from_cents(total_cents),
        "total_sales_cents": total_cents,
        "transactions": count,
        "avg_transaction": from_cents(avg_cents),
        "avg_transaction_cents": avg_cents,
        "top_category": category_rows[0].category if category_rows else None,
        "payment_methods": {
            method: {"amount": from_cents(int(amount)), "amount_cents": int(amount), "count": int(n)}
            for method, amount, n in method_rows
        },
        "top_products": [
            {
                "product_id": row.product_id,
                "name": row.name,
                "revenue": from_cents(int(row.revenue)),
                "revenue_cents": int(row.revenue),
                "quantity": int(row.quantity),
            }
            for row in product_rows
        ],
        "daily_sales": {str(d): from_cents(int(amount)) for d, amount in daily_rows},
    }
