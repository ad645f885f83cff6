# src/rs_order/application/schemas.py
"""Pydantic schemas for the order API.

Requests are snake_case; money is integer cents. Every money field in a
response has a ``*_display`` companion formatted with the configured currency
symbol.
"""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from src.rs_common.cents import cents_to_display
from src.rs_common.datetime_utils import ensure_utc
from src.rs_common.enums import FilterOp, OrderChannel, OrderStatus, PaymentMethod, SortDirection
from src.rs_order.domain.analytics import AnalyticsResult
from src.rs_order.domain.models import Customer, Order, OrderItem, Payment, SelectedOption
from src.rs_query.compiler import QuerySpec
from src.rs_store.domain.models import FieldFilter

ORDER_SORTABLE_FIELDS = ("createdAt", "updatedAt", "orderNumber", "amounts.total", "status")
ORDER_SEARCH_FIELDS = ("customer.name", "customer.phone", "items.name", "tableId", "orderNumber")

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class SelectedOptionIn(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    choice: str
    price: int = Field(0, ge=0)


class OrderItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    qty: int = Field(gt=0, le=1000)
    unit_price: int = Field(ge=0)
    options: list[SelectedOptionIn] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=500)

    def to_domain(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            name=self.name,
            qty=self.qty,
            unit_price=self.unit_price,
            options=tuple(
                SelectedOption(id=o.id, name=o.name, choice=o.choice, price=o.price)
                for o in self.options
            ),
            notes=self.notes or None,
        )


class CustomerIn(BaseModel):
    name: str | None = Field(None, max_length=120)
    phone: str | None = Field(None, max_length=30)


class CreateOrderRequest(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    channel: OrderChannel
    table_id: str | None = Field(None, max_length=40)
    customer: CustomerIn | None = None
    coupon_code: str | None = Field(None, max_length=20)

    @field_validator("coupon_code")
    @classmethod
    def blank_code_is_none(cls, v: str | None) -> str | None:
        return v.strip() or None if v is not None else None

    def customer_domain(self) -> Customer | None:
        if self.customer is None or not (self.customer.name or self.customer.phone):
            return None
        return Customer(name=self.customer.name, phone=self.customer.phone)


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class PaymentRequest(BaseModel):
    method: PaymentMethod
    amount: int = Field(gt=0)
    change_due: int | None = Field(None, ge=0)

    def to_domain(self) -> Payment:
        return Payment(method=self.method.value, amount=self.amount, change_due=self.change_due)


class OrderQueryParams(BaseModel):
    """Listing filters; every field maps onto one store-side filter."""

    status: OrderStatus | None = None
    channel: OrderChannel | None = None
    table_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: str | None = None
    sort_order: SortDirection | None = None
    search: str | None = Field(None, max_length=100)

    @field_validator("date_from", "date_to")
    @classmethod
    def as_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_range(self) -> "OrderQueryParams":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    def to_query_spec(self) -> QuerySpec:
        filters: list[FieldFilter] = []
        if self.status is not None:
            filters.append(FieldFilter("status", FilterOp.EQ, self.status.value))
        if self.channel is not None:
            filters.append(FieldFilter("channel", FilterOp.EQ, self.channel.value))
        if self.table_id:
            filters.append(FieldFilter("tableId", FilterOp.EQ, self.table_id))
        if self.date_from is not None:
            filters.append(FieldFilter("createdAt", FilterOp.GTE, self.date_from))
        if self.date_to is not None:
            filters.append(FieldFilter("createdAt", FilterOp.LTE, self.date_to))
        return QuerySpec(
            filters=filters,
            sort_field=self.sort_by,
            sort_direction=self.sort_order,
            page=self.page,
            limit=self.limit,
            search=self.search,
        )


class OrderCursorParams(OrderQueryParams):
    """Cursor listing; `page` is ignored, the cursor decides where to resume."""

    cursor: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SelectedOptionOut(BaseModel):
    id: str
    name: str
    choice: str
    price: int


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    qty: int
    unit_price: int
    options: list[SelectedOptionOut]
    notes: str | None
    line_total: int


class AmountsOut(BaseModel):
    subtotal: int
    discounts: int
    service_fee: int | None
    delivery_fee: int | None
    total: int
    subtotal_display: str
    total_display: str


class PaymentOut(BaseModel):
    method: str
    amount: int
    change_due: int | None


class OrderResponse(BaseModel):
    id: str
    order_number: int
    channel: str
    status: str
    items: list[OrderItemOut]
    amounts: AmountsOut
    table_id: str | None
    customer: dict[str, str | None] | None
    coupon_code: str | None
    payments: list[PaymentOut]
    amount_paid: int
    cancel_reason: str | None
    created_at: str | None
    updated_at: str | None
    closed_at: str | None

    @classmethod
    def from_domain(cls, o: Order, currency_symbol: str = "R$") -> "OrderResponse":
        a = o.amounts
        return cls(
            id=o.id,
            order_number=o.order_number,
            channel=o.channel,
            status=o.status,
            items=[
                OrderItemOut(
                    product_id=i.product_id,
                    name=i.name,
                    qty=i.qty,
                    unit_price=i.unit_price,
                    options=[
                        SelectedOptionOut(id=opt.id, name=opt.name, choice=opt.choice, price=opt.price)
                        for opt in i.options
                    ],
                    notes=i.notes,
                    line_total=i.line_total,
                )
                for i in o.items
            ],
            amounts=AmountsOut(
                subtotal=a.subtotal,
                discounts=a.discounts,
                service_fee=a.service_fee,
                delivery_fee=a.delivery_fee,
                total=a.total,
                subtotal_display=cents_to_display(a.subtotal, currency_symbol),
                total_display=cents_to_display(a.total, currency_symbol),
            ),
            table_id=o.table_id,
            customer=(
                {"name": o.customer.name, "phone": o.customer.phone} if o.customer else None
            ),
            coupon_code=o.coupon_code,
            payments=[
                PaymentOut(method=p.method, amount=p.amount, change_due=p.change_due)
                for p in o.payments
            ],
            amount_paid=o.amount_paid,
            cancel_reason=o.cancel_reason,
            created_at=o.created_at.isoformat() if o.created_at else None,
            updated_at=o.updated_at.isoformat() if o.updated_at else None,
            closed_at=o.closed_at.isoformat() if o.closed_at else None,
        )


class OrderPageResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    total_pages: int
    current_page: int
    limit: int
    has_next: bool
    has_prev: bool


class OrderCursorResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class ProductStatsOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    revenue: int


class AnalyticsResponse(BaseModel):
    total_orders: int
    total_revenue: int
    total_revenue_display: str
    average_order_value: int
    average_order_value_display: str
    orders_by_status: dict[str, int]
    orders_by_channel: dict[str, int]
    top_products: list[ProductStatsOut]

    @classmethod
    def from_result(cls, r: AnalyticsResult, currency_symbol: str = "R$") -> "AnalyticsResponse":
        return cls(
            total_orders=r.total_orders,
            total_revenue=r.total_revenue,
            total_revenue_display=cents_to_display(r.total_revenue, currency_symbol),
            average_order_value=r.average_order_value,
            average_order_value_display=cents_to_display(r.average_order_value, currency_symbol),
            orders_by_status=r.orders_by_status,
            orders_by_channel=r.orders_by_channel,
            top_products=[
                ProductStatsOut(
                    product_id=p.product_id, name=p.name, quantity=p.quantity, revenue=p.revenue
                )
                for p in r.top_products
            ],
        )
