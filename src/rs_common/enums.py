"""Global enums - values are the persisted document strings.

Order documents store these lowercase values verbatim; changing one is a
data migration.
"""

from enum import Enum


class OrderStatus(str, Enum):
    DRAFT = "draft"
    PLACED = "placed"
    CONFIRMED = "confirmed"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    SERVED = "served"
    CLOSED = "closed"
    CANCELED = "canceled"


class OrderChannel(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    PIX = "pix"
    ONLINE = "online"


class CouponType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class CouponCheckResult(str, Enum):
    """Outcome of coupon validation, in check order."""
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    VALID = "VALID"


class FilterOp(str, Enum):
    EQ = "=="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IN = "in"
    NOT_IN = "not-in"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    STORE_ERROR = "STORE_ERROR"
    RATE_LIMIT = "RATE_LIMIT"  # raised by the HTTP edge, never by this service
    INTERNAL = "INTERNAL"


TERMINAL_STATUSES = frozenset({OrderStatus.CLOSED.value, OrderStatus.CANCELED.value})
