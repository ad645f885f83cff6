"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Validation (rejected before touching the store)
  2xxx: Order
  3xxx: Coupon
  4xxx: Catalog
  9xxx: System

Every error also carries a `kind` from the stable taxonomy in ErrorKind,
which is what API clients should branch on.
"""

from src.rs_common.enums import ErrorKind


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        kind: ErrorKind = ErrorKind.INTERNAL,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.kind = kind
        super().__init__(message)


# --- 1xxx: Validation ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422, ErrorKind.VALIDATION)


class PageWindowExceededError(AppError):
    def __init__(self, window: int, max_window: int) -> None:
        super().__init__(
            1002,
            f"Page window {window} exceeds {max_window} records; use cursor pagination",
            422,
            ErrorKind.VALIDATION,
        )


class SearchScanLimitError(AppError):
    def __init__(self, max_scan: int) -> None:
        super().__init__(
            1003,
            f"Search would scan more than {max_scan} records; add filters to narrow it",
            422,
            ErrorKind.VALIDATION,
        )


class AnalyticsRangeTooLargeError(AppError):
    def __init__(self, max_orders: int) -> None:
        super().__init__(
            1004,
            f"Date range matches more than {max_orders} orders; narrow the date range",
            422,
            ErrorKind.VALIDATION,
        )


class InvalidCursorError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Pagination cursor is malformed", 422, ErrorKind.VALIDATION)


# --- 2xxx: Order ---

class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(2001, f"Order not found: {order_id}", 404, ErrorKind.NOT_FOUND)


class IllegalStatusTransitionError(AppError):
    def __init__(self, order_id: str, current: str, requested: str) -> None:
        super().__init__(
            2002,
            f"Order {order_id} cannot move from {current} to {requested}",
            409,
            ErrorKind.CONFLICT,
        )


class ConcurrentModificationError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            2003,
            f"Order {order_id} was modified concurrently; reload and retry",
            409,
            ErrorKind.CONFLICT,
        )


class OrderCanceledError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            2004, f"Order {order_id} is canceled and accepts no payments", 409, ErrorKind.CONFLICT
        )


# --- 3xxx: Coupon ---

class CouponRejectedError(AppError):
    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(3002, message, 422, ErrorKind.VALIDATION)


class DuplicateCouponError(AppError):
    def __init__(self, code: str) -> None:
        super().__init__(3003, f"Coupon code already exists: {code}", 409, ErrorKind.CONFLICT)


# --- 4xxx: Catalog ---

class ProductNotFoundError(AppError):
    def __init__(self, product_id: str) -> None:
        super().__init__(4001, f"Product not found: {product_id}", 404, ErrorKind.NOT_FOUND)


# --- 9xxx: System ---

class DocumentNotFoundError(AppError):
    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(
            9001, f"Document not found: {collection}/{doc_id}", 404, ErrorKind.NOT_FOUND
        )


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500, ErrorKind.INTERNAL)


class StoreError(AppError):
    """Document store I/O failure.

    The driver's text is kept in `detail` and only shown to clients in debug
    mode; `message` is always safe to expose.
    """

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(
            9003, f"Store operation failed: {operation}", 503, ErrorKind.STORE_ERROR
        )


class DuplicateDocumentError(StoreError):
    """Write rejected by a unique index."""

    def __init__(self, operation: str, detail: str = "") -> None:
        super().__init__(operation, detail)
        self.code = 9004
        self.message = f"Store operation violated a unique constraint: {operation}"
        self.http_status = 409
        self.kind = ErrorKind.CONFLICT
