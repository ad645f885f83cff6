"""OrderApplicationService - order creation, lifecycle, payments and queries.

Status writes are compare-and-set on the status that was read, so two staff
members moving the same order race safely: the loser gets a CONFLICT instead
of silently overwriting the winner.
"""
import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings, settings
from src.rs_common.datetime_utils import ensure_utc, utc_now
from src.rs_common.enums import TERMINAL_STATUSES, FilterOp, OrderStatus, SortDirection
from src.rs_common.errors import (
    AnalyticsRangeTooLargeError,
    ConcurrentModificationError,
    CouponRejectedError,
    IllegalStatusTransitionError,
    InvalidInputError,
    OrderCanceledError,
    OrderNotFoundError,
)
from src.rs_coupon.application.service import CouponApplicationService
from src.rs_order.application.schemas import (
    ORDER_SEARCH_FIELDS,
    ORDER_SORTABLE_FIELDS,
    AnalyticsResponse,
    CreateOrderRequest,
    OrderCursorResponse,
    OrderListResponse,
    OrderPageResponse,
    OrderQueryParams,
    OrderResponse,
    PaymentRequest,
)
from src.rs_order.domain.analytics import aggregate_orders
from src.rs_order.domain.models import Order
from src.rs_order.domain.pricing import calc_subtotal, calculate_amounts
from src.rs_order.domain.state_machine import (
    ATTENTION_STATUSES,
    INITIAL_STATUS,
    IllegalTransition,
    apply_transition,
)
from src.rs_order.infrastructure.persistence import (
    COLLECTION,
    OrderRepository,
    document_to_order,
)
from src.rs_query.compiler import MAX_PAGE_LIMIT, ORDER_DEFAULT_SORT, CompiledQuery, compile_query
from src.rs_query.pagination import PaginationExecutor
from src.rs_store.domain.models import FieldFilter, SortDirective
from src.rs_store.domain.repository import DocumentRepositoryProtocol
from src.rs_store.infrastructure.persistence import DocumentRepository

logger = logging.getLogger(__name__)

ORDER_NUMBER_MIN = 1000
ORDER_NUMBER_MAX = 9999

_NEWEST_FIRST = SortDirective("createdAt", SortDirection.DESC)
_OLDEST_FIRST = SortDirective("createdAt", SortDirection.ASC)


class OrderApplicationService:
    def __init__(
        self,
        store: DocumentRepositoryProtocol,
        coupons: CouponApplicationService,
        config: Settings = settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = OrderRepository(store)
        self._coupons = coupons
        self._config = config
        self._clock = clock
        self._pager = PaginationExecutor(
            store, config.OFFSET_WINDOW_MAX, config.SEARCH_SCAN_MAX
        )

    @classmethod
    def for_tenant(cls, db: AsyncSession, tenant_id: str) -> "OrderApplicationService":
        return cls(
            DocumentRepository(db, tenant_id, COLLECTION),
            CouponApplicationService.for_tenant(db, tenant_id),
        )

    def _to_response(self, order: Order) -> OrderResponse:
        return OrderResponse.from_domain(order, self._config.CURRENCY_SYMBOL)

    async def _load(self, order_id: str) -> Order:
        order = await self._repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_order(self, req: CreateOrderRequest) -> OrderResponse:
        items = [i.to_domain() for i in req.items]

        discount = 0
        coupon_code = None
        if req.coupon_code:
            check = await self._coupons.check(req.coupon_code, calc_subtotal(items))
            if not check.valid:
                raise CouponRejectedError(check.result.value, check.error or "Coupon rejected")
            discount = check.discount
            coupon_code = check.coupon.code if check.coupon else None

        amounts = calculate_amounts(
            items,
            req.channel.value,
            discount=discount,
            service_fee_bps=self._config.SERVICE_FEE_BPS,
            delivery_fee=self._config.DELIVERY_FEE_CENTS,
        )
        order = Order(
            id="",
            order_number=random.randint(ORDER_NUMBER_MIN, ORDER_NUMBER_MAX),
            channel=req.channel.value,
            status=INITIAL_STATUS,
            items=items,
            amounts=amounts,
            table_id=req.table_id,
            customer=req.customer_domain(),
            coupon_code=coupon_code,
        )
        order_id = await self._repo.create(order)
        logger.info(
            "Order %s created: #%d %s total=%d",
            order_id, order.order_number, order.channel, amounts.total,
        )
        return self._to_response(await self._load(order_id))

    async def _transition(
        self, order_id: str, requested: str, cancel_reason: str | None = None
    ) -> OrderResponse:
        order = await self._load(order_id)
        try:
            change = apply_transition(order.status, requested, order.closed_at, self._clock())
        except IllegalTransition as exc:
            logger.info("Order %s transition rejected: %s", order_id, exc)
            raise IllegalStatusTransitionError(order_id, exc.current, exc.requested) from None

        if not change.changed:
            return self._to_response(order)

        applied = await self._repo.apply_status_change(
            order_id, order.status, change, cancel_reason
        )
        if not applied:
            logger.warning("Order %s status CAS lost (expected %s)", order_id, order.status)
            raise ConcurrentModificationError(order_id)
        logger.info("Order %s: %s -> %s", order_id, order.status, change.status)
        return self._to_response(await self._load(order_id))

    async def update_status(self, order_id: str, status: OrderStatus | str) -> OrderResponse:
        return await self._transition(order_id, OrderStatus(status).value)

    async def cancel(self, order_id: str, reason: str | None = None) -> OrderResponse:
        return await self._transition(order_id, OrderStatus.CANCELED.value, reason)

    async def add_payment(self, order_id: str, req: PaymentRequest) -> OrderResponse:
        order = await self._load(order_id)
        if order.status == OrderStatus.CANCELED.value:
            raise OrderCanceledError(order_id)
        await self._repo.append_payment(order_id, req.to_domain())
        logger.info("Order %s payment %s %d", order_id, req.method.value, req.amount)
        return self._to_response(await self._load(order_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(self, order_id: str) -> OrderResponse:
        return self._to_response(await self._load(order_id))

    def _compile(self, params: OrderQueryParams) -> CompiledQuery:
        return compile_query(
            params.to_query_spec(),
            ORDER_DEFAULT_SORT,
            search_fields=ORDER_SEARCH_FIELDS,
            sortable_fields=ORDER_SORTABLE_FIELDS,
        )

    async def find_with_query(self, params: OrderQueryParams) -> OrderPageResponse:
        page = await self._pager.execute_offset(self._compile(params))
        return OrderPageResponse(
            items=[self._to_response(document_to_order(d)) for d in page.items],
            total=page.total,
            total_pages=page.total_pages,
            current_page=page.current_page,
            limit=page.limit,
            has_next=page.has_next,
            has_prev=page.has_prev,
        )

    async def list_orders_cursor(
        self, params: OrderQueryParams, cursor: str | None = None
    ) -> OrderCursorResponse:
        page = await self._pager.execute_cursor(self._compile(params), cursor)
        return OrderCursorResponse(
            items=[self._to_response(document_to_order(d)) for d in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )

    async def find_active(self) -> OrderListResponse:
        orders = await self._repo.find_where(
            [FieldFilter("status", FilterOp.NOT_IN, tuple(sorted(TERMINAL_STATUSES)))],
            _NEWEST_FIRST,
        )
        return OrderListResponse(items=[self._to_response(o) for o in orders])

    async def get_recent(self, limit: int = 10) -> OrderListResponse:
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_LIMIT}, got {limit}")
        orders = await self._repo.find_where((), _NEWEST_FIRST, limit)
        return OrderListResponse(items=[self._to_response(o) for o in orders])

    async def orders_requiring_attention(
        self, threshold_minutes: int | None = None
    ) -> OrderListResponse:
        """Orders stuck in placed/confirmed for longer than the threshold, oldest first."""
        minutes = (
            threshold_minutes
            if threshold_minutes is not None
            else self._config.ATTENTION_THRESHOLD_MINUTES
        )
        if minutes < 0:
            raise InvalidInputError(f"threshold_minutes must be >= 0, got {minutes}")
        cutoff = self._clock() - timedelta(minutes=minutes)
        orders = await self._repo.find_where(
            [
                FieldFilter("status", FilterOp.IN, ATTENTION_STATUSES),
                FieldFilter("createdAt", FilterOp.LT, cutoff),
            ],
            _OLDEST_FIRST,
        )
        return OrderListResponse(items=[self._to_response(o) for o in orders])

    async def get_analytics(
        self, date_from: datetime | None = None, date_to: datetime | None = None
    ) -> AnalyticsResponse:
        date_from = ensure_utc(date_from) if date_from is not None else None
        date_to = ensure_utc(date_to) if date_to is not None else None
        if date_from and date_to and date_from > date_to:
            raise InvalidInputError("date_from must not be after date_to")
        filters: list[FieldFilter] = []
        if date_from is not None:
            filters.append(FieldFilter("createdAt", FilterOp.GTE, date_from))
        if date_to is not None:
            filters.append(FieldFilter("createdAt", FilterOp.LTE, date_to))

        cap = self._config.ANALYTICS_MAX_ORDERS
        orders = await self._repo.find_where(filters, _NEWEST_FIRST, cap + 1)
        if len(orders) > cap:
            raise AnalyticsRangeTooLargeError(cap)
        return AnalyticsResponse.from_result(
            aggregate_orders(orders), self._config.CURRENCY_SYMBOL
        )
