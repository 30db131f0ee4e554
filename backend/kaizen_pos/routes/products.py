# Overview: Flask API routes for products and stock; parses input and returns JSON responses.

# backend/kaizen_pos/routes/products.py
"""
Product and stock routes.

Money fields arrive in currency units (price, cost) and are stored as cents.
Stock is writable on create only; later changes go through adjust-stock.
"""
from flask import Blueprint, request

from ..models import Product
from ..money import to_cents
from ..responses import fail, from_error, ok
from ..services import inventory_service, products_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "company_name", "sku", "barcode", "name", "category",
        "price_cents", "cost_cents", "stock", "low_stock_alert",
    },
    required_on_create={"sku", "barcode", "name", "category", "price_cents", "cost_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "company_name", "sku", "barcode", "name", "category",
        "price_cents", "cost_cents", "low_stock_alert", "is_active",
    },
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _normalize_money(payload: dict) -> dict:
    """price/cost (currency units) -> price_cents/cost_cents."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    normalized = dict(payload)
    for field in ("price", "cost"):
        if field in normalized:
            raw = normalized.pop(field)
            normalized[f"{field}_cents"] = None if raw is None else to_cents(raw, field=field)
    if "lowStockAlert" in normalized:
        normalized["low_stock_alert"] = normalized.pop("lowStockAlert")
    return normalized


def _int_arg(name: str, default=None):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    return coerce_int(raw, name)


@products_bp.get("")
def list_products():
    """
    Query params:
    - category, search, company_name: optional filters
    - include_inactive: "true" to include soft-deleted products
    """
    products = products_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("search"),
        company_name=request.args.get("company_name"),
        include_inactive=request.args.get("include_inactive", "").lower() == "true",
    )
    return ok([p.to_dict() for p in products])


@products_bp.get("/low-stock")
def list_low_stock():
    products = inventory_service.list_low_stock(request.args.get("company_name"))
    return ok([p.to_dict() for p in products])


@products_bp.get("/categories")
def list_categories():
    return ok(products_service.list_categories(request.args.get("company_name")))


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        return ok(products_service.get_product(product_id).to_dict())
    except Exception as e:
        return from_error(e)


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(
            model=Product,
            payload=_normalize_money(payload),
            policy=PRODUCT_CREATE_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except Exception as e:
        return from_error(e)
    return ok(created.to_dict(), 201)


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(
            model=Product,
            payload=_normalize_money(payload),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except Exception as e:
        return from_error(e)
    return ok(updated.to_dict())


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except Exception as e:
        return from_error(e)
    return {"success": True, "message": "Product deleted successfully"}, 200


@products_bp.route("/<int:product_id>/adjust-stock", methods=["POST", "PATCH"])
def adjust_stock_route(product_id: int):
    """
    Body: { type: "in" | "out" | "adjustment", quantity: int > 0, note?: str }

    For "adjustment", quantity is the new absolute stock level.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("Invalid JSON payload", 400)

    try:
        product, adjustment = inventory_service.adjust_stock(
            product_id=product_id,
            adjustment_type=data.get("type"),
            quantity=data.get("quantity"),
            note=data.get("note"),
        )
    except Exception as e:
        return from_error(e)

    body = product.to_dict()
    body["adjustment"] = adjustment.to_dict()
    return ok(body)


@products_bp.get("/<int:product_id>/stock-history")
def stock_history_route(product_id: int):
    """Most recent entries first. Query params: limit (default 50), offset."""
    try:
        history = inventory_service.get_stock_history(
            product_id=product_id,
            limit=_int_arg("limit"),
            offset=_int_arg("offset", 0),
        )
    except Exception as e:
        return from_error(e)
    return ok([entry.to_dict() for entry in history])
