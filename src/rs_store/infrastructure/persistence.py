# src/rs_store/infrastructure/persistence.py
"""DocumentRepository - JSONB-backed implementation of DocumentRepositoryProtocol.

All queries use raw text() SQL against the single ``documents`` table.
Every statement is scoped by (tenant_id, collection). Field names never reach
the SQL string: nested keys are bound as a TEXT[] path parameter, and only
whitelisted operators / directions are interpolated.

Each single-document write commits on its own; batch_update commits once for
the whole batch so a failure leaves no partial writes.
"""
import json
import logging
from collections.abc import Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.rs_common.datetime_utils import parse_iso, to_iso
from src.rs_common.enums import FilterOp, SortDirection
from src.rs_common.errors import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    InvalidInputError,
    StoreError,
)
from src.rs_store.domain.models import Document, FieldFilter, SortDirective, StartAfter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SCOPE = "tenant_id = :tenant_id AND collection = :collection"

_SELECT_COLUMNS = "id, data, created_at, updated_at"

_INSERT_SQL = text("""
    INSERT INTO documents (tenant_id, collection, data)
    VALUES (:tenant_id, :collection, CAST(:data AS JSONB))
    RETURNING id
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM documents WHERE {_SCOPE} AND id = :id
""")

_MERGE_SQL = text(f"""
    UPDATE documents
    SET data = data || CAST(:patch AS JSONB), updated_at = NOW()
    WHERE {_SCOPE} AND id = :id
    RETURNING id
""")

_MERGE_IF_SQL = text(f"""
    UPDATE documents
    SET data = data || CAST(:patch AS JSONB), updated_at = NOW()
    WHERE {_SCOPE} AND id = :id AND data @> CAST(:expected AS JSONB)
    RETURNING id
""")

_DELETE_SQL = text(f"""
    DELETE FROM documents WHERE {_SCOPE} AND id = :id
""")

_ARRAY_APPEND_SQL = text(f"""
    UPDATE documents
    SET data = jsonb_set(
            data,
            ARRAY[CAST(:field AS TEXT)],
            COALESCE(data -> CAST(:field AS TEXT), '[]'::jsonb)
                || jsonb_build_array(CAST(:value AS JSONB))
        ),
        updated_at = NOW()
    WHERE {_SCOPE} AND id = :id
    RETURNING id
""")

_TOGGLE_SQL = text(f"""
    UPDATE documents
    SET data = jsonb_set(
            data,
            ARRAY[CAST(:field AS TEXT)],
            to_jsonb(NOT COALESCE(CAST(data ->> CAST(:field AS TEXT) AS BOOLEAN), FALSE))
        ),
        updated_at = NOW()
    WHERE {_SCOPE} AND id = :id
    RETURNING CAST(data ->> CAST(:field AS TEXT) AS BOOLEAN) AS flag
""")

# Store-maintained keys map to real columns.
_COLUMNS: dict[str, tuple[str, str]] = {
    "id": ("id", "TEXT"),
    "createdAt": ("created_at", "TIMESTAMPTZ"),
    "updatedAt": ("updated_at", "TIMESTAMPTZ"),
}

_COMPARISONS = {
    FilterOp.EQ: "=",
    FilterOp.LT: "<",
    FilterOp.LTE: "<=",
    FilterOp.GT: ">",
    FilterOp.GTE: ">=",
}


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _row_to_document(row: Any) -> Document:
    """Convert a DB result row to a document dict."""
    body = row.data if isinstance(row.data, dict) else json.loads(row.data)
    return {
        **body,
        "id": row.id,
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
    }


# ---------------------------------------------------------------------------
# Query builder
# ---------------------------------------------------------------------------


class _QueryBuilder:
    """Accumulates WHERE clauses with uniquely named bound parameters."""

    def __init__(self, tenant_id: str, collection: str) -> None:
        self.clauses: list[str] = [_SCOPE]
        self.params: dict[str, Any] = {"tenant_id": tenant_id, "collection": collection}
        self._n = 0

    def bind(self, value: Any) -> str:
        name = f"p{self._n}"
        self._n += 1
        self.params[name] = value
        return f":{name}"

    def field_expr(self, field: str) -> tuple[str, str | None]:
        """Return (sql expression, column type) for a field; type None = JSONB."""
        if field in _COLUMNS:
            return _COLUMNS[field]
        parts = field.split(".")
        if not all(parts):
            raise InvalidInputError(f"bad field name {field!r}")
        return f"(data #> CAST({self.bind(parts)} AS TEXT[]))", None

    def value_param(self, value: Any, col_type: str | None) -> str:
        if col_type is None:
            return f"CAST({self.bind(_dumps(value))} AS JSONB)"
        if col_type == "TIMESTAMPTZ":
            value = parse_iso(value)
        return f"CAST({self.bind(value)} AS {col_type})"

    def add_filter(self, flt: FieldFilter) -> None:
        expr, col_type = self.field_expr(flt.field)
        op = FilterOp(flt.op)
        if op in _COMPARISONS:
            self.clauses.append(f"{expr} {_COMPARISONS[op]} {self.value_param(flt.value, col_type)}")
            return
        values = list(flt.value)
        if col_type is None:
            member = f"CAST({self.bind(_dumps(values))} AS JSONB) @> jsonb_build_array({expr})"
        else:
            if col_type == "TIMESTAMPTZ":
                values = [parse_iso(v) for v in values]
            member = f"{expr} = ANY(CAST({self.bind(values)} AS {col_type}[]))"
        if op is FilterOp.IN:
            self.clauses.append(member)
        else:
            # documents without the field never match not-in
            self.clauses.append(f"{expr} IS NOT NULL AND NOT ({member})")

    def add_start_after(self, sort: SortDirective, start_after: StartAfter) -> None:
        expr, col_type = self.field_expr(sort.field)
        cmp = ">" if SortDirection(sort.direction) is SortDirection.ASC else "<"
        value = self.value_param(start_after.value, col_type)
        self.clauses.append(f"({expr}, id) {cmp} ({value}, CAST({self.bind(start_after.doc_id)} AS TEXT))")

    def order_by(self, sort: SortDirective) -> str:
        expr, _ = self.field_expr(sort.field)
        direction = "ASC" if SortDirection(sort.direction) is SortDirection.ASC else "DESC"
        if sort.field == "id":
            return f" ORDER BY id {direction}"
        return f" ORDER BY {expr} {direction}, id {direction}"

    def where(self) -> str:
        return " AND ".join(self.clauses)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DocumentRepository:
    """Concrete implementation of DocumentRepositoryProtocol on PostgreSQL JSONB."""

    def __init__(self, db: AsyncSession, tenant_id: str, collection: str) -> None:
        self._db = db
        self.tenant_id = tenant_id
        self.collection = collection

    def _scope(self, **extra: Any) -> dict[str, Any]:
        return {"tenant_id": self.tenant_id, "collection": self.collection, **extra}

    async def _execute(self, operation: str, stmt: Any, params: dict[str, Any]) -> Any:
        try:
            return await self._db.execute(stmt, params)
        except IntegrityError as exc:
            await self._db.rollback()
            logger.warning(
                "Store %s hit a unique index on %s/%s: %s",
                operation, self.tenant_id, self.collection, exc.orig,
            )
            raise DuplicateDocumentError(operation, str(exc)) from exc
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Store %s failed on %s/%s: %s", operation, self.tenant_id, self.collection, exc
            )
            raise StoreError(operation, str(exc)) from exc

    async def _commit(self, operation: str) -> None:
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error("Store commit for %s failed: %s", operation, exc)
            raise StoreError(operation, str(exc)) from exc

    async def create(self, data: Document) -> str:
        result = await self._execute("create", _INSERT_SQL, self._scope(data=_dumps(data)))
        doc_id = result.scalar_one()
        await self._commit("create")
        return str(doc_id)

    async def find_by_id(self, doc_id: str) -> Document | None:
        result = await self._execute("find_by_id", _GET_BY_ID_SQL, self._scope(id=doc_id))
        row = result.fetchone()
        return _row_to_document(row) if row else None

    async def update(self, doc_id: str, patch: Document) -> None:
        result = await self._execute(
            "update", _MERGE_SQL, self._scope(id=doc_id, patch=_dumps(patch))
        )
        if result.fetchone() is None:
            await self._db.rollback()
            raise DocumentNotFoundError(self.collection, doc_id)
        await self._commit("update")

    async def update_where(
        self, doc_id: str, patch: Document, expected: dict[str, Any]
    ) -> bool:
        """Merge `patch` only if the stored body still contains `expected`."""
        result = await self._execute(
            "update_where",
            _MERGE_IF_SQL,
            self._scope(id=doc_id, patch=_dumps(patch), expected=_dumps(expected)),
        )
        applied = result.fetchone() is not None
        if applied:
            await self._commit("update_where")
        else:
            await self._db.rollback()
        return applied

    async def delete(self, doc_id: str) -> None:
        await self._execute("delete", _DELETE_SQL, self._scope(id=doc_id))
        await self._commit("delete")

    async def find_where(
        self,
        filters: Sequence[FieldFilter] = (),
        sort: SortDirective | None = None,
        limit: int | None = None,
        start_after: StartAfter | None = None,
    ) -> list[Document]:
        qb = _QueryBuilder(self.tenant_id, self.collection)
        for flt in filters:
            qb.add_filter(flt)
        if start_after is not None:
            if sort is None:
                raise InvalidInputError("start_after requires a sort directive")
            qb.add_start_after(sort, start_after)
        sql = f"SELECT {_SELECT_COLUMNS} FROM documents WHERE {qb.where()}"
        if sort is not None:
            sql += qb.order_by(sort)
        if limit is not None:
            sql += f" LIMIT {qb.bind(limit)}"
        result = await self._execute("find_where", text(sql), qb.params)
        return [_row_to_document(row) for row in result.fetchall()]

    async def count(self, filters: Sequence[FieldFilter] = ()) -> int:
        qb = _QueryBuilder(self.tenant_id, self.collection)
        for flt in filters:
            qb.add_filter(flt)
        sql = f"SELECT COUNT(*) FROM documents WHERE {qb.where()}"
        result = await self._execute("count", text(sql), qb.params)
        return int(result.scalar_one())

    async def batch_update(self, updates: Sequence[tuple[str, Document]]) -> None:
        for doc_id, patch in updates:
            result = await self._execute(
                "batch_update", _MERGE_SQL, self._scope(id=doc_id, patch=_dumps(patch))
            )
            if result.fetchone() is None:
                await self._db.rollback()
                raise DocumentNotFoundError(self.collection, doc_id)
        await self._commit("batch_update")

    async def array_append(self, doc_id: str, field: str, value: Any) -> None:
        result = await self._execute(
            "array_append",
            _ARRAY_APPEND_SQL,
            self._scope(id=doc_id, field=field, value=_dumps(value)),
        )
        if result.fetchone() is None:
            await self._db.rollback()
            raise DocumentNotFoundError(self.collection, doc_id)
        await self._commit("array_append")

    async def toggle_flag(self, doc_id: str, field: str) -> bool:
        result = await self._execute(
            "toggle_flag", _TOGGLE_SQL, self._scope(id=doc_id, field=field)
        )
        row = result.fetchone()
        if row is None:
            await self._db.rollback()
            raise DocumentNotFoundError(self.collection, doc_id)
        await self._commit("toggle_flag")
        return bool(row.flag)
