"""Query compiler: turns a caller's query specification into store primitives.

The store understands conjunctive field filters, one sort directive and a
limit. Anything else a listing needs (free-text search, page offsets) is
carried on the CompiledQuery for the pagination executor to emulate.
"""
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.rs_common.enums import FilterOp, SortDirection
from src.rs_common.errors import InvalidInputError
from src.rs_store.domain.models import Document, FieldFilter, SortDirective

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100
MAX_IN_VALUES = 30

ORDER_DEFAULT_SORT = SortDirective("createdAt", SortDirection.DESC)
CATALOG_DEFAULT_SORT = SortDirective("position", SortDirection.ASC)


@dataclass
class QuerySpec:
    filters: list[FieldFilter] = field(default_factory=list)
    sort_field: str | None = None
    sort_direction: SortDirection | None = None
    page: int = 1
    limit: int = 20
    search: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CompiledQuery:
    filters: tuple[FieldFilter, ...]
    sort: SortDirective
    limit: int
    offset: int = 0
    search: str | None = None
    search_fields: tuple[str, ...] = ()

    @property
    def fetch_limit(self) -> int:
        """Rows the store must return to cover the requested page."""
        return self.offset + self.limit

    @property
    def page(self) -> int:
        return self.offset // self.limit + 1


def _check_filter(flt: FieldFilter) -> FieldFilter:
    if not isinstance(flt.field, str) or not flt.field.strip():
        raise InvalidInputError("filter field must be a non-empty string")
    try:
        op = FilterOp(flt.op)
    except ValueError:
        raise InvalidInputError(f"unsupported filter operator {flt.op!r}") from None
    if op in (FilterOp.IN, FilterOp.NOT_IN):
        if isinstance(flt.value, (str, bytes)) or not isinstance(flt.value, Sequence):
            raise InvalidInputError(f"'{op.value}' on {flt.field} needs a list of values")
        if not 0 < len(flt.value) <= MAX_IN_VALUES:
            raise InvalidInputError(
                f"'{op.value}' on {flt.field} takes 1-{MAX_IN_VALUES} values"
            )
        return FieldFilter(flt.field, op, tuple(flt.value))
    return FieldFilter(flt.field, op, flt.value)


def compile_query(
    spec: QuerySpec,
    default_sort: SortDirective,
    search_fields: Sequence[str] = (),
    sortable_fields: Sequence[str] | None = None,
) -> CompiledQuery:
    """Validate `spec` and lower it to filter/sort/limit primitives.

    Raises InvalidInputError for a bad page, limit, operator or sort field.
    """
    if spec.page < 1:
        raise InvalidInputError(f"page must be >= 1, got {spec.page}")
    if not 1 <= spec.limit <= MAX_PAGE_LIMIT:
        raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_LIMIT}, got {spec.limit}")

    filters = tuple(_check_filter(f) for f in spec.filters)

    sort_field = spec.sort_field or default_sort.field
    if sortable_fields is not None and sort_field not in sortable_fields:
        raise InvalidInputError(f"cannot sort by {sort_field!r}")
    direction = spec.sort_direction or default_sort.direction

    search = spec.search.strip() if spec.search else None
    compiled = CompiledQuery(
        filters=filters,
        sort=SortDirective(sort_field, SortDirection(direction)),
        limit=spec.limit,
        offset=spec.offset,
        search=search or None,
        search_fields=tuple(search_fields),
    )
    logger.debug("Compiled query: %s", compiled)
    return compiled


# ---------------------------------------------------------------------------
# Document field access and in-memory search
# ---------------------------------------------------------------------------


def iter_field_values(doc: Any, path: str) -> Iterator[Any]:
    """Yield every value at a dotted path, fanning out through lists."""
    head, _, rest = path.partition(".")
    if isinstance(doc, list):
        for element in doc:
            yield from iter_field_values(element, path)
        return
    if not isinstance(doc, dict) or head not in doc:
        return
    value = doc[head]
    if rest:
        yield from iter_field_values(value, rest)
    elif isinstance(value, list):
        yield from value
    else:
        yield value


def field_value(doc: Document, path: str) -> Any:
    return next(iter_field_values(doc, path), None)


def matches_search(doc: Document, term: str, fields: Sequence[str]) -> bool:
    """Case-insensitive substring match of `term` against any of `fields`."""
    needle = term.lower()
    for path in fields:
        for value in iter_field_values(doc, path):
            if value is None or isinstance(value, (dict, list)):
                continue
            text = value.isoformat() if isinstance(value, datetime) else str(value)
            if needle in text.lower():
                return True
    return False
