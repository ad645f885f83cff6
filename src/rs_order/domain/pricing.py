"""Order pricing - subtotal, per-channel fees, discount and total.

All arithmetic is integer cents. Fees that do not apply to a channel are
absent (None), not zero, so the persisted ``fees`` map omits them.
"""
from collections.abc import Iterable

from src.rs_common.cents import apply_bps
from src.rs_common.enums import OrderChannel
from src.rs_order.domain.models import Amounts, OrderItem

DEFAULT_SERVICE_FEE_BPS = 1000  # 10%
DEFAULT_DELIVERY_FEE = 500


def calc_subtotal(items: Iterable[OrderItem]) -> int:
    """Σ qty x (unit price + option surcharges)."""
    return sum(item.line_total for item in items)


def calc_service_fee(subtotal: int, channel: str, fee_bps: int) -> int | None:
    if channel != OrderChannel.DINE_IN.value:
        return None
    return apply_bps(subtotal, fee_bps) or None


def calc_delivery_fee(channel: str, flat_fee: int) -> int | None:
    if channel != OrderChannel.DELIVERY.value:
        return None
    return flat_fee or None


def calculate_amounts(
    items: Iterable[OrderItem],
    channel: str,
    discount: int = 0,
    service_fee_bps: int = DEFAULT_SERVICE_FEE_BPS,
    delivery_fee: int = DEFAULT_DELIVERY_FEE,
) -> Amounts:
    """Price an order.

    The discount is capped at the subtotal, so the total can never drop
    below the fees.
    """
    if discount < 0:
        raise ValueError(f"discount must be >= 0, got {discount}")
    subtotal = calc_subtotal(items)
    service = calc_service_fee(subtotal, channel, service_fee_bps)
    delivery = calc_delivery_fee(channel, delivery_fee)
    applied_discount = min(discount, subtotal)
    total = subtotal + (service or 0) + (delivery or 0) - applied_discount
    return Amounts(
        subtotal=subtotal,
        discounts=applied_discount,
        service_fee=service,
        delivery_fee=delivery,
        total=total,
    )
