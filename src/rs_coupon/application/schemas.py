# src/rs_coupon/application/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.rs_common.datetime_utils import ensure_utc
from src.rs_coupon.domain.models import Coupon, normalize_code
from src.rs_coupon.domain.validator import CouponCheck


class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=3, max_length=20)
    type: Literal["percent", "fixed"]
    value: int = Field(gt=0)
    valid_from: datetime
    valid_to: datetime
    min_subtotal: int | None = Field(None, ge=0)
    active: bool = True

    @field_validator("code")
    @classmethod
    def canonical_code(cls, v: str) -> str:
        code = normalize_code(v)
        if len(code) < 3 or " " in code:
            raise ValueError("code must be 3-20 characters without spaces")
        return code

    @field_validator("valid_from", "valid_to")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_window_and_value(self) -> "CreateCouponRequest":
        if self.valid_to <= self.valid_from:
            raise ValueError("valid_to must be after valid_from")
        if self.type == "percent" and self.value > 100:
            raise ValueError("percent coupons cannot exceed 100")
        return self


class ValidateCouponRequest(BaseModel):
    code: str = Field(max_length=50)
    subtotal: int = Field(ge=0)


class CouponResponse(BaseModel):
    id: str
    code: str
    type: str
    value: int
    valid_from: datetime
    valid_to: datetime
    min_subtotal: int | None
    active: bool

    @classmethod
    def from_domain(cls, c: Coupon) -> "CouponResponse":
        return cls(
            id=c.id,
            code=c.code,
            type=c.type,
            value=c.value,
            valid_from=c.valid_from,
            valid_to=c.valid_to,
            min_subtotal=c.min_subtotal,
            active=c.active,
        )


class CouponValidationResponse(BaseModel):
    valid: bool
    result: str
    discount: int = 0
    coupon: CouponResponse | None = None
    error: str | None = None

    @classmethod
    def from_check(cls, check: CouponCheck) -> "CouponValidationResponse":
        return cls(
            valid=check.valid,
            result=check.result.value,
            discount=check.discount,
            coupon=CouponResponse.from_domain(check.coupon) if check.valid and check.coupon else None,
            error=check.error,
        )
