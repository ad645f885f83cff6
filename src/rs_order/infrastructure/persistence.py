# src/rs_order/infrastructure/persistence.py
"""OrderRepository - order documents <-> Order domain objects.

Persisted shape (camelCase, money in integer cents):
  orderNumber, channel, status, items[{productId, name, qty, unitPrice,
  options[{id, name, choice, price}], notes?}], amounts{subtotal, discounts,
  fees{service?, delivery?}, total}, tableId?, customer{name?, phone?}?,
  couponCode?, payments[{method, amount, changeDue?}], cancelReason?, closedAt?
"""
from collections.abc import Sequence
from typing import Any

from src.rs_common.datetime_utils import parse_iso
from src.rs_common.errors import DocumentNotFoundError, OrderNotFoundError
from src.rs_order.domain.models import (
    Amounts,
    Customer,
    Order,
    OrderItem,
    Payment,
    SelectedOption,
)
from src.rs_order.domain.state_machine import StatusChange
from src.rs_store.domain.models import Document, FieldFilter, SortDirective
from src.rs_store.domain.repository import DocumentRepositoryProtocol

COLLECTION = "orders"


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _item_to_doc(item: OrderItem) -> Document:
    return _drop_none({
        "productId": item.product_id,
        "name": item.name,
        "qty": item.qty,
        "unitPrice": item.unit_price,
        "options": [
            {"id": o.id, "name": o.name, "choice": o.choice, "price": o.price}
            for o in item.options
        ],
        "notes": item.notes,
    })


def _doc_to_item(doc: Document) -> OrderItem:
    return OrderItem(
        product_id=doc["productId"],
        name=doc["name"],
        qty=int(doc["qty"]),
        unit_price=int(doc["unitPrice"]),
        options=tuple(
            SelectedOption(id=o["id"], name=o["name"], choice=o["choice"], price=int(o["price"]))
            for o in doc.get("options", [])
        ),
        notes=doc.get("notes"),
    )


def amounts_to_doc(amounts: Amounts) -> Document:
    return {
        "subtotal": amounts.subtotal,
        "discounts": amounts.discounts,
        "fees": _drop_none({"service": amounts.service_fee, "delivery": amounts.delivery_fee}),
        "total": amounts.total,
    }


def payment_to_doc(payment: Payment) -> Document:
    return _drop_none({
        "method": payment.method,
        "amount": payment.amount,
        "changeDue": payment.change_due,
    })


def order_to_document(order: Order) -> Document:
    """Serialize everything except the store-maintained id and timestamps."""
    customer = None
    if order.customer is not None:
        customer = _drop_none({"name": order.customer.name, "phone": order.customer.phone})
    return _drop_none({
        "orderNumber": order.order_number,
        "channel": order.channel,
        "status": order.status,
        "items": [_item_to_doc(i) for i in order.items],
        "amounts": amounts_to_doc(order.amounts),
        "tableId": order.table_id,
        "customer": customer,
        "couponCode": order.coupon_code,
        "payments": [payment_to_doc(p) for p in order.payments],
        "cancelReason": order.cancel_reason,
        "closedAt": order.closed_at,
    })


def document_to_order(doc: Document) -> Order:
    amounts = doc["amounts"]
    fees = amounts.get("fees") or {}
    customer = doc.get("customer")
    return Order(
        id=doc["id"],
        order_number=int(doc.get("orderNumber", 0)),
        channel=doc["channel"],
        status=doc["status"],
        items=[_doc_to_item(i) for i in doc.get("items", [])],
        amounts=Amounts(
            subtotal=int(amounts["subtotal"]),
            discounts=int(amounts.get("discounts", 0)),
            service_fee=fees.get("service"),
            delivery_fee=fees.get("delivery"),
            total=int(amounts["total"]),
        ),
        table_id=doc.get("tableId"),
        customer=Customer(customer.get("name"), customer.get("phone")) if customer else None,
        coupon_code=doc.get("couponCode"),
        payments=[
            Payment(method=p["method"], amount=int(p["amount"]), change_due=p.get("changeDue"))
            for p in doc.get("payments", [])
        ],
        cancel_reason=doc.get("cancelReason"),
        created_at=parse_iso(doc.get("createdAt")),
        updated_at=parse_iso(doc.get("updatedAt")),
        closed_at=parse_iso(doc.get("closedAt")),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    def __init__(self, store: DocumentRepositoryProtocol) -> None:
        self.store = store

    async def create(self, order: Order) -> str:
        return await self.store.create(order_to_document(order))

    async def get_by_id(self, order_id: str) -> Order | None:
        doc = await self.store.find_by_id(order_id)
        return document_to_order(doc) if doc else None

    async def apply_status_change(
        self,
        order_id: str,
        expected_status: str,
        change: StatusChange,
        cancel_reason: str | None = None,
    ) -> bool:
        """Compare-and-set on status; False when another writer got there first."""
        patch: dict[str, Any] = {"status": change.status}
        if change.closed_at is not None:
            patch["closedAt"] = change.closed_at
        if cancel_reason is not None:
            patch["cancelReason"] = cancel_reason
        return await self.store.update_where(order_id, patch, {"status": expected_status})

    async def append_payment(self, order_id: str, payment: Payment) -> None:
        try:
            await self.store.array_append(order_id, "payments", payment_to_doc(payment))
        except DocumentNotFoundError:
            raise OrderNotFoundError(order_id) from None

    async def find_where(
        self,
        filters: Sequence[FieldFilter] = (),
        sort: SortDirective | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        docs = await self.store.find_where(filters, sort, limit)
        return [document_to_order(d) for d in docs]
