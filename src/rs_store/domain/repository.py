# src/rs_store/domain/repository.py
"""DocumentRepository Protocol - interface contract for the document store.

One instance is scoped to a single (tenant, collection) pair. Returned
documents are plain dicts carrying ``id``, ``createdAt`` and ``updatedAt``
next to the stored body.
"""
from collections.abc import Sequence
from typing import Any, Protocol

from src.rs_store.domain.models import Document, FieldFilter, SortDirective, StartAfter


class DocumentRepositoryProtocol(Protocol):
    collection: str

    async def create(self, data: Document) -> str: ...

    async def find_by_id(self, doc_id: str) -> Document | None: ...

    async def update(self, doc_id: str, patch: Document) -> None: ...

    async def delete(self, doc_id: str) -> None: ...

    async def find_where(
        self,
        filters: Sequence[FieldFilter] = (),
        sort: SortDirective | None = None,
        limit: int | None = None,
        start_after: StartAfter | None = None,
    ) -> list[Document]: ...

    async def count(self, filters: Sequence[FieldFilter] = ()) -> int: ...

    async def batch_update(self, updates: Sequence[tuple[str, Document]]) -> None: ...

    async def update_where(
        self, doc_id: str, patch: Document, expected: dict[str, Any]
    ) -> bool: ...

    async def array_append(self, doc_id: str, field: str, value: Any) -> None: ...

    async def toggle_flag(self, doc_id: str, field: str) -> bool: ...
