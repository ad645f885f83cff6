# src/rs_coupon/infrastructure/persistence.py
"""CouponRepository - maps coupon documents onto the Coupon domain model."""
from typing import Any

from src.rs_common.datetime_utils import parse_iso
from src.rs_common.enums import FilterOp
from src.rs_coupon.domain.models import Coupon, normalize_code
from src.rs_store.domain.models import Document, FieldFilter
from src.rs_store.domain.repository import DocumentRepositoryProtocol

COLLECTION = "coupons"


def _doc_to_coupon(doc: Document) -> Coupon:
    return Coupon(
        id=doc["id"],
        code=doc["code"],
        type=doc["type"],
        value=int(doc["value"]),
        valid_from=parse_iso(doc["validFrom"]),  # type: ignore[arg-type]
        valid_to=parse_iso(doc["validTo"]),  # type: ignore[arg-type]
        active=bool(doc.get("active", True)),
        min_subtotal=doc.get("minSubtotal"),
    )


def coupon_to_document(coupon: Coupon) -> Document:
    doc: dict[str, Any] = {
        "code": normalize_code(coupon.code),
        "type": coupon.type,
        "value": coupon.value,
        "validFrom": coupon.valid_from,
        "validTo": coupon.valid_to,
        "active": coupon.active,
    }
    if coupon.min_subtotal is not None:
        doc["minSubtotal"] = coupon.min_subtotal
    return doc


class CouponRepository:
    def __init__(self, store: DocumentRepositoryProtocol) -> None:
        self._store = store

    async def get_by_code(self, code: str) -> Coupon | None:
        docs = await self._store.find_where(
            [FieldFilter("code", FilterOp.EQ, normalize_code(code))], limit=1
        )
        return _doc_to_coupon(docs[0]) if docs else None

    async def create(self, coupon: Coupon) -> str:
        return await self._store.create(coupon_to_document(coupon))
