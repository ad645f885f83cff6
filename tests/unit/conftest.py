"""Unit-test fixtures: an in-memory document store with the SQL store's semantics.

Bodies round-trip through JSON (datetimes become ISO strings) exactly like the
JSONB column; id/createdAt/updatedAt are store-maintained, and createdAt
advances one minute per insert so sort order is deterministic.
"""
import copy
import json
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.rs_common.datetime_utils import parse_iso, to_iso
from src.rs_common.enums import FilterOp, SortDirection
from src.rs_common.errors import DocumentNotFoundError, StoreError
from src.rs_query.compiler import field_value
from src.rs_store.domain.models import Document, FieldFilter, SortDirective, StartAfter

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

_TIME_FIELDS = ("createdAt", "updatedAt")


def _json_roundtrip(value: Any) -> Any:
    def default(v: Any) -> Any:
        if isinstance(v, datetime):
            return to_iso(v)
        if hasattr(v, "value"):
            return v.value
        raise TypeError(type(v).__name__)

    return json.loads(json.dumps(value, default=default))


class InMemoryDocumentRepository:
    def __init__(self, collection: str = "docs", start: datetime = BASE_TIME) -> None:
        self.collection = collection
        self.rows: dict[str, Document] = {}
        self.calls: list[str] = []
        self.fail_on: str | None = None
        self._next_id = 1
        self._clock = start

    # -- helpers ---------------------------------------------------------

    def _record(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_on == op:
            raise StoreError(op, "simulated outage")

    def seed(self, data: Document, created_at: datetime | None = None) -> str:
        doc_id = f"doc-{self._next_id:05d}"
        self._next_id += 1
        ts = created_at or self._clock
        self._clock += timedelta(minutes=1)
        self.rows[doc_id] = {
            **_json_roundtrip(data), "id": doc_id, "createdAt": ts, "updatedAt": ts
        }
        return doc_id

    def _get(self, doc_id: str) -> Document:
        if doc_id not in self.rows:
            raise DocumentNotFoundError(self.collection, doc_id)
        return self.rows[doc_id]

    @staticmethod
    def _coerce(field: str, value: Any) -> Any:
        if field in _TIME_FIELDS:
            return parse_iso(value)
        return _json_roundtrip(value)

    def _matches(self, doc: Document, flt: FieldFilter) -> bool:
        actual = field_value(doc, flt.field)
        op = FilterOp(flt.op)
        if op in (FilterOp.IN, FilterOp.NOT_IN):
            values = [self._coerce(flt.field, v) for v in flt.value]
            found = actual is not None and actual in values
            return found if op is FilterOp.IN else (actual is not None and not found)
        expected = self._coerce(flt.field, flt.value)
        if actual is None:
            return False
        if op is FilterOp.EQ:
            return actual == expected
        if op is FilterOp.LT:
            return actual < expected
        if op is FilterOp.LTE:
            return actual <= expected
        if op is FilterOp.GT:
            return actual > expected
        return actual >= expected

    # -- protocol ----------------------------------------------------------

    async def create(self, data: Document) -> str:
        self._record("create")
        return self.seed(data)

    async def find_by_id(self, doc_id: str) -> Document | None:
        self._record("find_by_id")
        doc = self.rows.get(doc_id)
        return copy.deepcopy(doc) if doc else None

    async def update(self, doc_id: str, patch: Document) -> None:
        self._record("update")
        self._get(doc_id).update(_json_roundtrip(patch))

    async def delete(self, doc_id: str) -> None:
        self._record("delete")
        self.rows.pop(doc_id, None)

    async def find_where(
        self,
        filters: Sequence[FieldFilter] = (),
        sort: SortDirective | None = None,
        limit: int | None = None,
        start_after: StartAfter | None = None,
    ) -> list[Document]:
        self._record("find_where")
        docs = [d for d in self.rows.values() if all(self._matches(d, f) for f in filters)]
        if sort is not None:
            desc = SortDirection(sort.direction) is SortDirection.DESC
            docs.sort(key=lambda d: (field_value(d, sort.field), d["id"]), reverse=desc)
            if start_after is not None:
                pivot = (self._coerce(sort.field, start_after.value), start_after.doc_id)
                docs = [
                    d for d in docs
                    if ((field_value(d, sort.field), d["id"]) < pivot) == desc
                    and (field_value(d, sort.field), d["id"]) != pivot
                ]
        if limit is not None:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def count(self, filters: Sequence[FieldFilter] = ()) -> int:
        self._record("count")
        return sum(1 for d in self.rows.values() if all(self._matches(d, f) for f in filters))

    async def batch_update(self, updates: Sequence[tuple[str, Document]]) -> None:
        self._record("batch_update")
        for doc_id, _ in updates:
            self._get(doc_id)
        for doc_id, patch in updates:
            self.rows[doc_id].update(_json_roundtrip(patch))

    async def update_where(
        self, doc_id: str, patch: Document, expected: dict[str, Any]
    ) -> bool:
        self._record("update_where")
        doc = self.rows.get(doc_id)
        if doc is None:
            return False
        if any(doc.get(k) != v for k, v in _json_roundtrip(expected).items()):
            return False
        doc.update(_json_roundtrip(patch))
        return True

    async def array_append(self, doc_id: str, field: str, value: Any) -> None:
        self._record("array_append")
        doc = self._get(doc_id)
        doc.setdefault(field, []).append(_json_roundtrip(value))

    async def toggle_flag(self, doc_id: str, field: str) -> bool:
        self._record("toggle_flag")
        doc = self._get(doc_id)
        doc[field] = not bool(doc.get(field, False))
        return doc[field]


@pytest.fixture
def make_store() -> Callable[..., InMemoryDocumentRepository]:
    """Factory for fresh in-memory stores: ``make_store("orders")``."""
    return InMemoryDocumentRepository
