"""saved_agreements

Revision ID: 001_saved_agreements
Revises:
Create Date: 2026-10-19

Creates the saved_agreements table: one row per priced service agreement,
per-service records in JSONB, a classification snapshot and a version counter.

Idempotent: safe to run when Base.metadata.create_all() already created the
table at startup.
"""
import logging
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects import postgresql

revision = '001_saved_agreements'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.001")


def _table_exists(conn, table_name: str) -> bool:
    result = conn.execute(
        text(
            "SELECT EXISTS("
            "  SELECT 1 FROM information_schema.tables"
            "  WHERE table_name = :tname"
            ")"
        ),
        {"tname": table_name},
    )
    return bool(result.scalar())


def upgrade() -> None:
    conn = op.get_bind()

    if _table_exists(conn, 'saved_agreements'):
        logger.info("Table saved_agreements already exists, skipping create")
        return

    op.create_table(
        'saved_agreements',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending_approval'),
        sa.Column('classification', sa.String(20), nullable=False, server_default='red'),
        sa.Column('contract_months', sa.Integer, nullable=False, server_default='12'),
        sa.Column('total_agreement_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payload', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_saved_agreements_status', 'saved_agreements', ['status'])
    logger.info("Created table: saved_agreements")


def downgrade() -> None:
    conn = op.get_bind()
    if _table_exists(conn, 'saved_agreements'):
        op.drop_index('ix_saved_agreements_status', table_name='saved_agreements')
        op.drop_table('saved_agreements')
