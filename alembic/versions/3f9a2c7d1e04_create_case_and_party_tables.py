"""Create case, party and harvest job tables

Revision ID: 3f9a2c7d1e04
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9a2c7d1e04'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table('case_records',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('source_type', sa.String(), nullable=False, comment='disputes | enforcement_orders'),
        sa.Column('case_ref', sa.String(), nullable=True, comment='DR No. or court reference'),
        sa.Column('secondary_ref', sa.String(), nullable=True, comment='TR No. or PRTB No.'),
        sa.Column('heading', sa.Text(), nullable=True),
        sa.Column('case_date', sa.Date(), nullable=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('applicant_name', sa.String(), nullable=True),
        sa.Column('applicant_role', sa.String(), nullable=True),
        sa.Column('respondent_name', sa.String(), nullable=True),
        sa.Column('respondent_role', sa.String(), nullable=True),
        sa.Column('documents', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('linked_case_id', sa.UUID(), nullable=True, comment='Dispute an enforcement order refers to'),
        sa.Column('raw_html', sa.Text(), nullable=True),
        sa.Column('source_page', sa.Integer(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_outcome', sa.String(), nullable=True),
        sa.Column('ai_compensation_amount', sa.Numeric(14, 2), nullable=True, comment='NULL when withheld by the quality gates'),
        sa.Column('ai_cost_order', sa.Numeric(14, 2), nullable=True),
        sa.Column('ai_property_address', sa.Text(), nullable=True),
        sa.Column('ai_dispute_type', sa.String(), nullable=True),
        sa.Column('ai_award_items', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ai_amount_quote', sa.Text(), nullable=True),
        sa.Column('ai_model', sa.String(), nullable=True),
        sa.Column('ai_processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('ai_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['linked_case_id'], ['case_records.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_type', 'case_ref', name='uq_case_records_source_ref'),
    )
    op.create_index('ix_case_records_pending_ai', 'case_records', ['source_type', 'ai_processed_at'])

    op.create_table('parties',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('normalized_name', sa.String(), nullable=False),
        sa.Column('party_type', sa.String(), server_default='Unknown', nullable=False, comment='Landlord | Tenant | Unknown'),
        sa.Column('total_cases', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_as_applicant', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_as_respondent', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_enforcement_orders', sa.Integer(), server_default='0', nullable=False),
        sa.Column('net_awards_for', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('net_awards_against', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('net_awards', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('normalized_name'),
    )

    op.create_table('case_parties',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('party_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, comment='applicant | respondent'),
        sa.Column('party_type', sa.String(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['case_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['party_id'], ['parties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('case_id', 'party_id', 'role', name='uq_case_parties_case_party_role'),
    )
    op.create_index('ix_case_parties_case_id', 'case_parties', ['case_id'])
    op.create_index('ix_case_parties_party_id', 'case_parties', ['party_id'])

    op.create_table('harvest_jobs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('source_type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), server_default='running', nullable=False, comment='running | completed | failed | cancelled'),
        sa.Column('current_page', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_pages', sa.Integer(), nullable=True),
        sa.Column('total_results', sa.Integer(), nullable=True),
        sa.Column('total_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('new_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('workflow_id', sa.String(), nullable=True),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    # At most one running job per source type
    op.create_index(
        'uq_harvest_jobs_running_source',
        'harvest_jobs',
        ['source_type'],
        unique=True,
        postgresql_where=sa.text("status = 'running'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('uq_harvest_jobs_running_source', table_name='harvest_jobs')
    op.drop_table('harvest_jobs')
    op.drop_index('ix_case_parties_party_id', table_name='case_parties')
    op.drop_index('ix_case_parties_case_id', table_name='case_parties')
    op.drop_table('case_parties')
    op.drop_table('parties')
    op.drop_index('ix_case_records_pending_ai', table_name='case_records')
    op.drop_table('case_records')
