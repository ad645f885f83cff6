"""Order domain model - pure dataclasses, no persistence dependency."""
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class SelectedOption:
    """Catalog choice copied onto the order at purchase time."""

    id: str
    name: str
    choice: str
    price: int  # cents, >= 0


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    name: str
    qty: int  # > 0
    unit_price: int  # cents, >= 0
    options: tuple[SelectedOption, ...] = ()
    notes: str | None = None

    @property
    def options_price(self) -> int:
        return sum(opt.price for opt in self.options)

    @property
    def line_total(self) -> int:
        return self.qty * (self.unit_price + self.options_price)


@dataclass(frozen=True)
class Amounts:
    subtotal: int
    discounts: int
    service_fee: int | None  # None = fee absent
    delivery_fee: int | None
    total: int


@dataclass(frozen=True)
class Customer:
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class Payment:
    method: str  # cash / card / pix / online
    amount: int
    change_due: int | None = None


@dataclass
class Order:
    id: str
    order_number: int
    channel: str  # dine_in / takeaway / delivery
    status: str
    items: list[OrderItem]
    amounts: Amounts
    table_id: str | None = None
    customer: Customer | None = None
    coupon_code: str | None = None
    payments: list[Payment] = field(default_factory=list)
    cancel_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def amount_paid(self) -> int:
        return sum(p.amount for p in self.payments)
