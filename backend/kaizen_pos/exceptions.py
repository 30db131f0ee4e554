"""
Typed errors for the stock and checkout core.

Every error carries:
- code: machine-readable identifier, safe to return to API clients
- status_code: the HTTP status the route layer answers with
- details: structured data (which product, how much was available, ...)

Routes never inspect messages; they catch PosError and serialize it.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for business-rule failures raised by the services."""

    code: str = "POS_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Validation errors: rejected before any mutation


class EmptyCartError(PosError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Transaction must have at least one item")


class InvalidAdjustmentTypeError(PosError):
    code = "INVALID_ADJUSTMENT_TYPE"

    def __init__(self, adjustment_type):
        super().__init__(
            "Invalid adjustment type. Use in, out, or adjustment",
            details={"type": adjustment_type},
        )


class InvalidQuantityError(PosError):
    code = "INVALID_QUANTITY"

    def __init__(self, message: str = "Quantity must be a positive integer", quantity=None):
        super().__init__(message, details={"quantity": quantity})


class InvalidPaymentMethodError(PosError):
    code = "INVALID_PAYMENT_METHOD"

    def __init__(self, payment_method, allowed):
        super().__init__(
            f"Invalid payment method. Use one of: {', '.join(allowed)}",
            details={"payment_method": payment_method},
        )


class InvalidDiscountError(PosError):
    code = "INVALID_DISCOUNT"


# Consistency errors: detected during the commit, trigger full rollback


class InsufficientStockError(PosError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, product_id: int, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
            },
        )


class InsufficientPaymentError(PosError):
    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, *, total_cents: int, cash_received_cents: int):
        super().__init__(
            f"Insufficient payment. Total is {total_cents / 100:.2f}, "
            f"cash received is {cash_received_cents / 100:.2f}",
            details={
                "total_cents": total_cents,
                "cash_received_cents": cash_received_cents,
            },
        )


class CashierNotFoundError(PosError):
    code = "CASHIER_NOT_FOUND"

    def __init__(self, cashier_id):
        super().__init__("Cashier not found or inactive", details={"cashier_id": cashier_id})


class NotFoundError(PosError):
    code = "NOT_FOUND"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id, item_name: str | None = None):
        label = item_name or product_id
        super().__init__(
            f"Product {label} not found",
            details={"product_id": product_id, "item_name": item_name},
        )


class TransactionNotFoundError(NotFoundError):
    code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id):
        super().__init__("Transaction not found", details={"transaction_id": transaction_id})


class ImmutableRecordError(PosError):
    """Raised when code tries to UPDATE or DELETE an append-only record."""

    code = "IMMUTABLE_RECORD"
    status_code = 409

    def __init__(self, entity: str, entity_id, operation: str):
        super().__init__(
            f"{entity} {entity_id} is immutable ({operation} rejected)",
            details={"entity": entity, "entity_id": entity_id, "operation": operation},
        )
