"""Coupon REST API - validate a code against a subtotal, create coupons."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.database import get_db_session
from src.rs_common.response import ApiResponse, success_response
from src.rs_coupon.application.schemas import CreateCouponRequest, ValidateCouponRequest
from src.rs_coupon.application.service import CouponApplicationService

router = APIRouter(prefix="/restaurants/{restaurant_id}/coupons", tags=["coupons"])


def get_coupon_service(
    restaurant_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> CouponApplicationService:
    return CouponApplicationService.for_tenant(db, restaurant_id)


CouponService = Annotated[CouponApplicationService, Depends(get_coupon_service)]


@router.post("/validate")
async def validate_coupon(
    body: ValidateCouponRequest, svc: CouponService, request: Request
) -> ApiResponse:
    data = await svc.validate_coupon(body.code, body.subtotal)
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))


@router.post("", status_code=201)
async def create_coupon(
    body: CreateCouponRequest, svc: CouponService, request: Request
) -> ApiResponse:
    data = await svc.create_coupon(body)
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))
