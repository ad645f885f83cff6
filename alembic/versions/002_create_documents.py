"""002: create documents table

One row per document, scoped by (tenant_id, collection). Bodies are JSONB
with camelCase keys; id and timestamps are real columns.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE documents (
            id          TEXT            PRIMARY KEY DEFAULT gen_random_uuid()::text,
            tenant_id   VARCHAR(64)     NOT NULL,
            collection  VARCHAR(64)     NOT NULL,
            data        JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_documents_data_object CHECK (jsonb_typeof(data) = 'object')
        )
    """)
    op.execute("""
        CREATE INDEX idx_documents_scope_created
        ON documents (tenant_id, collection, created_at DESC, id DESC)
    """)
    op.execute("""
        CREATE INDEX idx_documents_status
        ON documents (tenant_id, collection, (data ->> 'status'), created_at)
        WHERE collection = 'orders'
    """)
    op.execute("""
        CREATE INDEX idx_documents_position
        ON documents (tenant_id, collection, ((data ->> 'position')::int))
        WHERE collection = 'products'
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_documents_coupon_code
        ON documents (tenant_id, (data ->> 'code'))
        WHERE collection = 'coupons'
    """)
    op.execute("CREATE INDEX idx_documents_data ON documents USING GIN (data jsonb_path_ops)")
    op.execute("""
        CREATE TRIGGER trg_documents_updated_at
        BEFORE UPDATE ON documents
        FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at()
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_documents_updated_at ON documents")
    op.execute("DROP TABLE IF EXISTS documents")
