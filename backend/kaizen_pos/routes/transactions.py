# Overview: Flask API routes for checkout, transaction history, and reports.

# backend/kaizen_pos/routes/transactions.py
"""
Transaction routes.

POST /api/transactions body (currency values in currency units):
{
  "items": [{"product": 1, "productName": "...", "productSku": "...",
             "quantity": 3, "price": 15.00, "subtotal": 45.00}],
  "subtotal": 45.00, "discount": 0, "discountPercent": null,
  "vat": 5.40, "total": 50.40,
  "paymentMethod": "Cash" | "QR Code" | "Card",
  "cashReceived": 100.00,
  "cashier": 7, "cashierName": "...",
  "idempotencyKey": "optional, or Idempotency-Key header"
}

Item prices and totals are display hints; the server recomputes every money
field from the product records, the discount, and the configured VAT rate.
"""

from flask import Blueprint, current_app, request

from ..money import percent_to_bps, to_cents
from ..responses import fail, from_error, ok
from ..services import reporting_service, transaction_service
from ..services.reporting_service import ReportError
from ..services.transaction_service import CartItem
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, coerce_int

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _optional_cents(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    return to_cents(value, field=key)


def _parse_items(raw_items) -> list[CartItem]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if raw.get("product") is None:
            raise ValidationError(f"items[{index}].product is required")
        items.append(CartItem(
            product_id=coerce_int(raw.get("product"), f"items[{index}].product"),
            quantity=raw.get("quantity"),
            name=raw.get("productName"),
            price_cents_hint=_optional_cents(raw, "price"),
        ))
    return items


def _idempotency_key(data: dict) -> str | None:
    """Idempotency-Key header wins over the idempotencyKey body field."""
    key = request.headers.get("Idempotency-Key") or data.get("idempotencyKey")
    if key is None or key == "":
        return None
    return str(key).strip() or None


def _parse_date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@transactions_bp.post("")
def create_transaction_route():
    """
    Commit a sale.

    201: committed; 200: replay of an already committed idempotency key;
    400: empty cart, validation, insufficient stock or payment;
    404: unknown product; 500: unexpected failure.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return fail("Invalid JSON payload", 400)

    try:
        if data.get("discountPercent") not in (None, ""):
            discount_bps = percent_to_bps(data["discountPercent"], field="discountPercent")
        else:
            discount_bps = None
        if data.get("cashier") is None:
            raise ValidationError("cashier is required")

        result = transaction_service.commit_transaction(
            items=_parse_items(data.get("items")),
            payment_method=data.get("paymentMethod"),
            cashier_id=coerce_int(data.get("cashier"), "cashier"),
            discount_cents=_optional_cents(data, "discount") or 0,
            discount_bps=discount_bps,
            cash_received_cents=_optional_cents(data, "cashReceived"),
            idempotency_key=_idempotency_key(data),
            client_totals={
                "subtotal_cents": _optional_cents(data, "subtotal"),
                "vat_cents": _optional_cents(data, "vat"),
                "total_cents": _optional_cents(data, "total"),
            },
        )
    except Exception as e:
        return from_error(e)

    txn = result.transaction
    if result.hint_mismatches:
        current_app.logger.warning(
            "Client totals ignored for %s: %s",
            txn.receipt_number,
            "; ".join(result.hint_mismatches),
        )
    return ok(txn.to_dict(), 201 if result.created else 200)


@transactions_bp.get("")
def list_transactions_route():
    """Query params: startDate, endDate (ISO-8601, inclusive), company_name."""
    try:
        transactions = transaction_service.list_transactions(
            start=_parse_date_arg("startDate"),
            end=_parse_date_arg("endDate"),
            company_name=request.args.get("company_name"),
        )
    except Exception as e:
        return from_error(e)
    return ok([t.to_dict() for t in transactions])


@transactions_bp.get("/dashboard")
def dashboard_route():
    try:
        stats = reporting_service.dashboard_stats(company_name=request.args.get("company_name"))
    except Exception as e:
        return from_error(e)
    return ok(stats)


@transactions_bp.get("/reports")
def reports_route():
    """Query params: period (today | week | month, default week), company_name."""
    try:
        report = reporting_service.sales_report(
            period=request.args.get("period", "week"),
            company_name=request.args.get("company_name"),
        )
    except ReportError as e:
        return fail(str(e), 400, "INVALID_PERIOD")
    except Exception as e:
        return from_error(e)
    return ok(report)


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        return ok(transaction_service.get_transaction(transaction_id).to_dict())
    except Exception as e:
        return from_error(e)
