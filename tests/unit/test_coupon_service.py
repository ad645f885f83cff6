# tests/unit/test_coupon_service.py
"""CouponApplicationService and coupon schemas."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.rs_common.errors import DuplicateCouponError, DuplicateDocumentError
from src.rs_coupon.application.schemas import CreateCouponRequest
from src.rs_coupon.application.service import CouponApplicationService

NOW = datetime(2025, 1, 1, 0, 0, 1, tzinfo=UTC)


def _req(**kwargs) -> CreateCouponRequest:
    body = dict(
        code="welcome",
        type="percent",
        value=10,
        valid_from="2024-01-01T00:00:00Z",
        valid_to="2024-12-31T23:59:59Z",
    )
    body.update(kwargs)
    return CreateCouponRequest.model_validate(body)


@pytest.fixture
def store(make_store):
    return make_store("coupons")


@pytest.fixture
def svc(store):
    return CouponApplicationService(store, clock=lambda: NOW)


class TestCreateCouponRequest:
    def test_code_upper_cased(self) -> None:
        assert _req(code="  promo5 ").code == "PROMO5"

    def test_window_must_be_ordered(self) -> None:
        with pytest.raises(ValidationError):
            _req(valid_to="2023-12-31T00:00:00Z")

    def test_percent_cannot_exceed_100(self) -> None:
        with pytest.raises(ValidationError):
            _req(value=101)

    def test_fixed_can_exceed_100(self) -> None:
        assert _req(type="fixed", value=2500).value == 2500

    def test_code_length(self) -> None:
        with pytest.raises(ValidationError):
            _req(code="ab")

    def test_mixed_offsets_normalized(self) -> None:
        req = _req(valid_from="2024-01-01T00:00:00", valid_to="2024-12-31T00:00:00Z")
        assert req.valid_from == datetime(2024, 1, 1, tzinfo=UTC)
        assert req.valid_to.tzinfo is not None


class TestCreateCoupon:
    @pytest.mark.asyncio
    async def test_persists_normalized(self, svc, store):
        coupon = await svc.create_coupon(_req(min_subtotal=2000))
        assert coupon.code == "WELCOME"
        stored = store.rows[coupon.id]
        assert stored["code"] == "WELCOME"
        assert stored["minSubtotal"] == 2000

    @pytest.mark.asyncio
    async def test_duplicate_code(self, svc):
        await svc.create_coupon(_req())
        with pytest.raises(DuplicateCouponError):
            await svc.create_coupon(_req(code="WELCOME"))

    @pytest.mark.asyncio
    async def test_unique_index_race_is_conflict(self, svc, store):
        store.create = AsyncMock(side_effect=DuplicateDocumentError("create", "uq_documents_coupon_code"))
        with pytest.raises(DuplicateCouponError) as exc_info:
            await svc.create_coupon(_req())
        assert exc_info.value.code == 3003
        assert exc_info.value.http_status == 409


class TestValidateCoupon:
    @pytest.mark.asyncio
    async def test_expired_the_day_after(self, svc):
        await svc.create_coupon(_req())
        result = await svc.validate_coupon("welcome", 3480)
        assert result.valid is False
        assert result.result == "EXPIRED"
        assert result.discount == 0
        assert result.coupon is None

    @pytest.mark.asyncio
    async def test_valid_percent(self, svc):
        await svc.create_coupon(_req(valid_to="2025-06-30T00:00:00Z"))
        result = await svc.validate_coupon("WELCOME", 3480)
        assert result.valid
        assert result.discount == 348
        assert result.coupon.code == "WELCOME"

    @pytest.mark.asyncio
    async def test_inactive_found_by_code(self, svc):
        await svc.create_coupon(_req(active=False, valid_to="2023-01-01T00:00:00Z",
                                     valid_from="2022-01-01T00:00:00Z"))
        result = await svc.validate_coupon("welcome", 3480)
        assert result.result == "INACTIVE"

    @pytest.mark.asyncio
    async def test_not_found(self, svc):
        result = await svc.validate_coupon("GHOST", 100)
        assert result.result == "NOT_FOUND"
        assert result.error == "Coupon not found"

    @pytest.mark.asyncio
    async def test_below_minimum_message(self, svc):
        await svc.create_coupon(_req(min_subtotal=2000, valid_to="2025-06-30T00:00:00Z"))
        result = await svc.validate_coupon("welcome", 1500)
        assert result.result == "BELOW_MINIMUM"
        assert "R$ 20.00" in result.error
