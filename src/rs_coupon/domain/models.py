"""Coupon domain model - read-only input to pricing."""
from dataclasses import dataclass
from datetime import datetime


def normalize_code(code: str) -> str:
    """Coupon codes are case-insensitive; the canonical form is upper case."""
    return code.strip().upper()


@dataclass(frozen=True)
class Coupon:
    id: str
    code: str
    type: str  # percent / fixed
    value: int  # percent points or cents
    valid_from: datetime
    valid_to: datetime
    active: bool = True
    min_subtotal: int | None = None
