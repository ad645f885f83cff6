"""Order REST endpoints.

POST  /orders                     - create (server-priced, optional coupon)
GET   /orders                     - page-number listing (bounded window)
GET   /orders/cursor              - cursor listing
GET   /orders/active              - not closed / canceled
GET   /orders/recent              - newest N
GET   /orders/attention           - stuck in placed/confirmed
GET   /orders/analytics           - aggregates over a date range
GET   /orders/{order_id}
PATCH /orders/{order_id}/status
POST  /orders/{order_id}/cancel
POST  /orders/{order_id}/payments
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import get_db_session
from src.rs_common.response import ApiResponse, success_response
from src.rs_order.application.schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    OrderCursorParams,
    OrderQueryParams,
    PaymentRequest,
    UpdateStatusRequest,
)
from src.rs_order.application.service import OrderApplicationService

router = APIRouter(prefix="/restaurants/{restaurant_id}/orders", tags=["orders"])


def get_order_service(
    restaurant_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderApplicationService:
    return OrderApplicationService.for_tenant(db, restaurant_id)


OrderService = Annotated[OrderApplicationService, Depends(get_order_service)]


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post("", status_code=201)
async def create_order(
    body: CreateOrderRequest, svc: OrderService, request: Request
) -> ApiResponse:
    data = await svc.create_order(body)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("")
async def list_orders(
    params: Annotated[OrderQueryParams, Query()], svc: OrderService, request: Request
) -> ApiResponse:
    data = await svc.find_with_query(params)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/cursor")
async def list_orders_cursor(
    params: Annotated[OrderCursorParams, Query()], svc: OrderService, request: Request
) -> ApiResponse:
    data = await svc.list_orders_cursor(params, params.cursor)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/active")
async def list_active(svc: OrderService, request: Request) -> ApiResponse:
    data = await svc.find_active()
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/recent")
async def list_recent(
    svc: OrderService, request: Request, limit: int = Query(10, ge=1, le=100)
) -> ApiResponse:
    data = await svc.get_recent(limit)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/attention")
async def list_requiring_attention(
    svc: OrderService,
    request: Request,
    threshold_minutes: int | None = Query(None, ge=0),
) -> ApiResponse:
    data = await svc.orders_requiring_attention(threshold_minutes)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/analytics")
async def get_analytics(
    svc: OrderService,
    request: Request,
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
) -> ApiResponse:
    data = await svc.get_analytics(date_from, date_to)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.get("/{order_id}")
async def get_order(order_id: str, svc: OrderService, request: Request) -> ApiResponse:
    data = await svc.get_order(order_id)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.patch("/{order_id}/status")
async def update_status(
    order_id: str, body: UpdateStatusRequest, svc: OrderService, request: Request
) -> ApiResponse:
    data = await svc.update_status(order_id, body.status)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str, svc: OrderService, request: Request, body: CancelOrderRequest | None = None
) -> ApiResponse:
    data = await svc.cancel(order_id, body.reason if body else None)
    return success_response(data.model_dump(mode="json"), _request_id(request))


@router.post("/{order_id}/payments")
async def add_payment(
    order_id: str, body: PaymentRequest, svc: OrderService, request: Request
) -> ApiResponse:
    data = await svc.add_payment(order_id, body)
    return success_response(data.model_dump(mode="json"), _request_id(request))
