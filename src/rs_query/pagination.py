"""Pagination executor over a store that only supports filter/sort/limit.

Two modes:

* Offset (page number) - kept for callers that need "page N of M". The store
  has no skip, so page N is served by fetching ``offset + limit`` rows and
  discarding the first ``offset`` client-side. Page N therefore transfers
  O(N * limit) rows; the window is capped by ``offset_window_max``.
* Cursor - the primary listing mode. An opaque token carries the last row's
  sort value and id; the next page starts strictly after it.

Free-text search is never applied to an already-sliced page. It runs over the
filtered rows in sort order before any slicing, within ``search_scan_max``
scanned rows.

Cursor format: base64url JSON ``{"v": <sort value>, "id": "<doc id>"}``.
"""
import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime

from src.rs_common.errors import (
    InvalidCursorError,
    PageWindowExceededError,
    SearchScanLimitError,
)
from src.rs_query.compiler import CompiledQuery, field_value, matches_search
from src.rs_store.domain.models import Document, StartAfter
from src.rs_store.domain.repository import DocumentRepositoryProtocol

logger = logging.getLogger(__name__)

_SEARCH_BATCH_MIN = 50


@dataclass
class OffsetPage:
    items: list[Document]
    total: int
    total_pages: int
    current_page: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1


@dataclass
class CursorPage:
    items: list[Document]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_doc: Document, sort_field: str) -> str:
    """Encode cursor from the last document of a page."""
    value = field_value(last_doc, sort_field)
    if isinstance(value, datetime):
        value = value.isoformat()
    payload = {"v": value, "id": last_doc["id"]}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> StartAfter | None:
    """Decode cursor -> StartAfter, None for the first page.

    Raises InvalidCursorError on a malformed token.
    """
    if cursor is None:
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return StartAfter(value=data["v"], doc_id=str(data["id"]))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError):
        raise InvalidCursorError() from None


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit) in integers."""
    return -(-total // limit)


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class PaginationExecutor:
    def __init__(
        self,
        repo: DocumentRepositoryProtocol,
        offset_window_max: int = 2000,
        search_scan_max: int = 1000,
    ) -> None:
        self._repo = repo
        self._offset_window_max = offset_window_max
        self._search_scan_max = search_scan_max

    async def execute_offset(self, query: CompiledQuery) -> OffsetPage:
        if query.search:
            return await self._search_offset(query)

        if query.fetch_limit > self._offset_window_max:
            raise PageWindowExceededError(query.fetch_limit, self._offset_window_max)

        total = await self._repo.count(query.filters)
        if query.offset == 0:
            items = await self._repo.find_where(query.filters, query.sort, query.limit)
        else:
            logger.debug(
                "Offset page %d on %s over-fetches %d rows",
                query.page, self._repo.collection, query.fetch_limit,
            )
            rows = await self._repo.find_where(query.filters, query.sort, query.fetch_limit)
            items = rows[query.offset:]

        return OffsetPage(
            items=items,
            total=total,
            total_pages=total_pages(total, query.limit),
            current_page=query.page,
            limit=query.limit,
        )

    async def _search_offset(self, query: CompiledQuery) -> OffsetPage:
        assert query.search is not None
        rows = await self._repo.find_where(
            query.filters, query.sort, self._search_scan_max + 1
        )
        if len(rows) > self._search_scan_max:
            raise SearchScanLimitError(self._search_scan_max)
        matched = [d for d in rows if matches_search(d, query.search, query.search_fields)]
        return OffsetPage(
            items=matched[query.offset:query.fetch_limit],
            total=len(matched),
            total_pages=total_pages(len(matched), query.limit),
            current_page=query.page,
            limit=query.limit,
        )

    async def execute_cursor(self, query: CompiledQuery, cursor: str | None) -> CursorPage:
        start = cursor_decode(cursor)
        if query.search:
            items, has_more = await self._search_forward(query, start)
        else:
            # Fetch limit+1 to detect has_more without a count query
            rows = await self._repo.find_where(
                query.filters, query.sort, query.limit + 1, start
            )
            has_more = len(rows) > query.limit
            items = rows[:query.limit]

        next_cursor = cursor_encode(items[-1], query.sort.field) if has_more and items else None
        return CursorPage(items=items, next_cursor=next_cursor, has_more=has_more)

    async def _search_forward(
        self, query: CompiledQuery, start: StartAfter | None
    ) -> tuple[list[Document], bool]:
        """Scan forward in sort order until limit+1 rows match or rows run out."""
        assert query.search is not None
        batch_size = max(query.limit * 2, _SEARCH_BATCH_MIN)
        matched: list[Document] = []
        scanned = 0
        while len(matched) <= query.limit:
            if scanned >= self._search_scan_max:
                raise SearchScanLimitError(self._search_scan_max)
            batch = await self._repo.find_where(query.filters, query.sort, batch_size, start)
            scanned += len(batch)
            for doc in batch:
                if matches_search(doc, query.search, query.search_fields):
                    matched.append(doc)
                    if len(matched) > query.limit:
                        break
            if len(batch) < batch_size:
                break
            last = batch[-1]
            start = StartAfter(field_value(last, query.sort.field), last["id"])
        return matched[:query.limit], len(matched) > query.limit
