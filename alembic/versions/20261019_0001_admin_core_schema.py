"""Admin core schema - audit trail and reconciliation reports

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Audit trail (append-only)
    op.create_table(
        'audit_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('actor_id', sa.String(100), nullable=False, index=True),
        sa.Column('module_id', sa.String(100), nullable=False, index=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('detail_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_index('ix_audit_entries_actor_time', 'audit_entries', ['actor_id', 'created_at'])
    op.create_index('ix_audit_entries_module_time', 'audit_entries', ['module_id', 'created_at'])
    
    # Reconciliation reports (one row per pass)
    op.create_table(
        'reconciliation_reports',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('run_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('conflicts_json', sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('reconciliation_reports')
    op.drop_index('ix_audit_entries_module_time', table_name='audit_entries')
    op.drop_index('ix_audit_entries_actor_time', table_name='audit_entries')
    op.drop_table('audit_entries')
