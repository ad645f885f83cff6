"""Store query primitives - the only query vocabulary the document store speaks.

Field names are the persisted camelCase keys; dotted names address nested
keys (``customer.name``).
"""
from dataclasses import dataclass
from typing import Any

from src.rs_common.enums import FilterOp, SortDirection


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class SortDirective:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class StartAfter:
    """Forward cursor: resume strictly after (sort value, document id)."""

    value: Any
    doc_id: str


Document = dict[str, Any]
