"""Coupon validation: existence, activity, validity window, minimum subtotal.

Checks run in a fixed order and stop at the first failure, so a coupon that
is both inactive and expired always reports INACTIVE.
"""
from dataclasses import dataclass
from datetime import datetime

from src.rs_common.cents import cents_to_display, div_round_half_up
from src.rs_common.datetime_utils import ensure_utc
from src.rs_common.enums import CouponCheckResult, CouponType
from src.rs_coupon.domain.models import Coupon


@dataclass(frozen=True)
class CouponCheck:
    result: CouponCheckResult
    coupon: Coupon | None = None
    discount: int = 0
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.result is CouponCheckResult.VALID


def calc_discount(coupon: Coupon, subtotal: int) -> int:
    """Discount in cents, never more than the subtotal."""
    if coupon.type == CouponType.PERCENT.value:
        discount = div_round_half_up(subtotal * coupon.value, 100)
    else:
        discount = coupon.value
    return max(0, min(discount, subtotal))


def validate_coupon(
    coupon: Coupon | None,
    subtotal: int,
    now: datetime,
    currency_symbol: str = "R$",
) -> CouponCheck:
    if coupon is None:
        return CouponCheck(CouponCheckResult.NOT_FOUND, error="Coupon not found")
    if not coupon.active:
        return CouponCheck(
            CouponCheckResult.INACTIVE, coupon, error=f"Coupon {coupon.code} is not active"
        )
    now = ensure_utc(now)
    if now < ensure_utc(coupon.valid_from):
        return CouponCheck(
            CouponCheckResult.NOT_YET_VALID, coupon,
            error=f"Coupon {coupon.code} is not valid yet",
        )
    if now > ensure_utc(coupon.valid_to):
        return CouponCheck(
            CouponCheckResult.EXPIRED, coupon, error=f"Coupon {coupon.code} has expired"
        )
    if coupon.min_subtotal is not None and subtotal < coupon.min_subtotal:
        minimum = cents_to_display(coupon.min_subtotal, currency_symbol)
        return CouponCheck(
            CouponCheckResult.BELOW_MINIMUM, coupon,
            error=f"Coupon {coupon.code} requires a minimum order of {minimum}",
        )
    return CouponCheck(CouponCheckResult.VALID, coupon, discount=calc_discount(coupon, subtotal))
