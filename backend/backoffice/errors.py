# Overview: Typed engine failures shared by services and routes.

"""
Every failure the engine reports to a caller is an EngineError subclass.

Each error carries:
- code: stable machine-readable identifier (e.g. "INSUFFICIENT_STOCK")
- http_status: status the HTTP layer answers with
- details: structured context for the caller (product ids, amounts, ...)

Services raise these after rolling back the session, so a caller that
catches one can rely on no partial state having been committed.
"""


class EngineError(Exception):
    """Base class for typed engine failures."""

    code = "ENGINE_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# =============================================================================
# INPUT / CATALOG
# =============================================================================

class ValidationError(EngineError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class CatalogError(ValidationError):
    """Invalid conversion table or bundle definition."""
    code = "INVALID_CATALOG_DEFINITION"


class UnknownUnit(EngineError):
    code = "UNKNOWN_UNIT"

    def __init__(self, product_id: int | None, unit: str):
        super().__init__(
            f"Unit '{unit}' is not declared for product {product_id}",
            details={"product_id": product_id, "unit": unit},
        )


class EmptyItemList(EngineError):
    code = "EMPTY_ITEM_LIST"

    def __init__(self, message: str = "At least one item is required"):
        super().__init__(message)


# =============================================================================
# LOOKUPS
# =============================================================================

class NotFoundError(EngineError):
    code = "NOT_FOUND"
    http_status = 404
    entity = "Entity"

    def __init__(self, entity_id, message: str | None = None, details: dict | None = None):
        super().__init__(
            message or f"{self.entity} {entity_id} not found",
            details=details or {"id": entity_id},
        )


class ProductNotFound(NotFoundError):
    code = "PRODUCT_NOT_FOUND"
    entity = "Product"


class AccountNotFound(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"
    entity = "Account"


class CustomerNotFound(NotFoundError):
    code = "CUSTOMER_NOT_FOUND"
    entity = "Customer"


class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"
    entity = "Order"


class OrderItemNotFound(NotFoundError):
    code = "ORDER_ITEM_NOT_FOUND"
    entity = "Order item"


class SaleNotFound(NotFoundError):
    code = "SALE_NOT_FOUND"
    entity = "Sale"


class NoteNotFound(NotFoundError):
    code = "NOTE_NOT_FOUND"
    entity = "Note"


# =============================================================================
# BUSINESS RULES (409)
# =============================================================================

class ConflictError(EngineError):
    """409-level business rule conflict."""
    code = "CONFLICT"
    http_status = 409


class InsufficientStock(ConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, shortages: list[dict]):
        super().__init__("Insufficient stock", details={"items": shortages})


class AlreadyInvoiced(ConflictError):
    code = "ALREADY_INVOICED"

    def __init__(self, order_id: int, sale_id: int | None = None):
        super().__init__(
            f"Order {order_id} has already been invoiced",
            details={"order_id": order_id, "sale_id": sale_id},
        )


class InvalidOrderState(ConflictError):
    code = "INVALID_ORDER_STATE"


class InvalidNoteState(ConflictError):
    code = "INVALID_NOTE_STATE"


class InvalidPaymentSplit(EngineError):
    code = "INVALID_PAYMENT_SPLIT"


class CreditLimitExceeded(ConflictError):
    code = "CREDIT_LIMIT_EXCEEDED"


class UnknownEntryType(EngineError):
    """A stored ledger row carries a tag that is neither debit nor credit."""
    code = "UNKNOWN_ENTRY_TYPE"
    http_status = 500

    def __init__(self, transaction_id: int | None, entry_type: str):
        super().__init__(
            f"Transaction {transaction_id} has unknown entry type '{entry_type}'",
            details={"transaction_id": transaction_id, "entry_type": entry_type},
        )
