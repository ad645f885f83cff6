"""CouponApplicationService - coupon lookup, validation and creation.

Validation never mutates the coupon; applying a coupon to an order is the
order service's job.
"""
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings, settings
from src.rs_common.datetime_utils import utc_now
from src.rs_common.errors import DuplicateCouponError, DuplicateDocumentError
from src.rs_coupon.application.schemas import (
    CouponResponse,
    CouponValidationResponse,
    CreateCouponRequest,
)
from src.rs_coupon.domain.models import Coupon
from src.rs_coupon.domain.validator import CouponCheck, validate_coupon
from src.rs_coupon.infrastructure.persistence import COLLECTION, CouponRepository
from src.rs_store.domain.repository import DocumentRepositoryProtocol
from src.rs_store.infrastructure.persistence import DocumentRepository

logger = logging.getLogger(__name__)


class CouponApplicationService:
    def __init__(
        self,
        store: DocumentRepositoryProtocol,
        config: Settings = settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = CouponRepository(store)
        self._config = config
        self._clock = clock

    @classmethod
    def for_tenant(cls, db: AsyncSession, tenant_id: str) -> "CouponApplicationService":
        return cls(DocumentRepository(db, tenant_id, COLLECTION))

    async def check(self, code: str, subtotal: int, now: datetime | None = None) -> CouponCheck:
        coupon = await self._repo.get_by_code(code)
        check = validate_coupon(
            coupon, subtotal, now or self._clock(), self._config.CURRENCY_SYMBOL
        )
        if not check.valid:
            logger.info("Coupon %s rejected: %s", code, check.result.value)
        return check

    async def validate_coupon(self, code: str, subtotal: int) -> CouponValidationResponse:
        return CouponValidationResponse.from_check(await self.check(code, subtotal))

    async def create_coupon(self, req: CreateCouponRequest) -> CouponResponse:
        if await self._repo.get_by_code(req.code) is not None:
            raise DuplicateCouponError(req.code)
        coupon = Coupon(
            id="",
            code=req.code,
            type=req.type,
            value=req.value,
            valid_from=req.valid_from,
            valid_to=req.valid_to,
            active=req.active,
            min_subtotal=req.min_subtotal,
        )
        try:
            coupon_id = await self._repo.create(coupon)
        except DuplicateDocumentError:
            raise DuplicateCouponError(req.code) from None
        logger.info("Coupon %s created (%s %d)", req.code, req.type, req.value)
        return CouponResponse.from_domain(replace(coupon, id=coupon_id))
