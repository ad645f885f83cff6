"""Order analytics - grouped counts, revenue and top products over an order set.

Product revenue is ``unit_price x qty`` and deliberately leaves option
surcharges out; it is a menu-price ranking, not a cash report.
"""
from collections.abc import Iterable
from dataclasses import dataclass, field

from src.rs_common.cents import div_round_half_up
from src.rs_common.enums import OrderChannel, OrderStatus
from src.rs_order.domain.models import Order

TOP_PRODUCTS_LIMIT = 10


@dataclass
class ProductStats:
    product_id: str
    name: str
    quantity: int = 0
    revenue: int = 0


@dataclass
class AnalyticsResult:
    total_orders: int
    total_revenue: int
    average_order_value: int
    orders_by_status: dict[str, int]
    orders_by_channel: dict[str, int]
    top_products: list[ProductStats] = field(default_factory=list)


def aggregate_orders(orders: Iterable[Order]) -> AnalyticsResult:
    by_status = {s.value: 0 for s in OrderStatus}
    by_channel = {c.value: 0 for c in OrderChannel}
    products: dict[str, ProductStats] = {}
    total_orders = 0
    total_revenue = 0

    for order in orders:
        total_orders += 1
        total_revenue += order.amounts.total
        by_status[order.status] = by_status.get(order.status, 0) + 1
        by_channel[order.channel] = by_channel.get(order.channel, 0) + 1
        for item in order.items:
            stats = products.get(item.product_id)
            if stats is None:
                stats = products[item.product_id] = ProductStats(item.product_id, item.name)
            stats.quantity += item.qty
            stats.revenue += item.unit_price * item.qty

    # sorted() is stable: equal revenue keeps first-seen order
    top = sorted(products.values(), key=lambda p: p.revenue, reverse=True)
    return AnalyticsResult(
        total_orders=total_orders,
        total_revenue=total_revenue,
        average_order_value=(
            div_round_half_up(total_revenue, total_orders) if total_orders else 0
        ),
        orders_by_status=by_status,
        orders_by_channel=by_channel,
        top_products=top[:TOP_PRODUCTS_LIMIT],
    )
