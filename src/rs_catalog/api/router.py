"""Catalog REST endpoints.

GET  /products                          - filtered, paginated listing
POST /products/{product_id}/highlight   - flip isHighlighted
POST /products/{product_id}/day-special - flip isDaySpecial
PUT  /products/positions                - batch reorder
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_catalog.application.schemas import ProductQueryParams, UpdatePositionsRequest
from src.rs_catalog.application.service import CatalogApplicationService
from src.rs_common.database import get_db_session
from src.rs_common.response import ApiResponse, success_response

router = APIRouter(prefix="/restaurants/{restaurant_id}/products", tags=["products"])


def get_catalog_service(
    restaurant_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> CatalogApplicationService:
    return CatalogApplicationService.for_tenant(db, restaurant_id)


CatalogService = Annotated[CatalogApplicationService, Depends(get_catalog_service)]


@router.get("")
async def list_products(
    params: Annotated[ProductQueryParams, Query()], svc: CatalogService, request: Request
) -> ApiResponse:
    data = await svc.find_products(params)
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))


@router.put("/positions")
async def update_positions(
    body: UpdatePositionsRequest, svc: CatalogService, request: Request
) -> ApiResponse:
    data = await svc.update_positions([(u.id, u.position) for u in body.updates])
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))


@router.post("/{product_id}/highlight")
async def toggle_highlight(product_id: str, svc: CatalogService, request: Request) -> ApiResponse:
    data = await svc.toggle_highlight(product_id)
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))


@router.post("/{product_id}/day-special")
async def toggle_day_special(product_id: str, svc: CatalogService, request: Request) -> ApiResponse:
    data = await svc.toggle_day_special(product_id)
    return success_response(data.model_dump(mode="json"), getattr(request.state, "request_id", None))
