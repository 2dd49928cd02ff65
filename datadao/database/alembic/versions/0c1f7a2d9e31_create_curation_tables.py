"""create_curation_tables

Create the user, submission and relay_job tables for the curation,
approval and reputation relay pipeline.

Revision ID: 0c1f7a2d9e31
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0c1f7a2d9e31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- 1. Users --
    op.create_table(
        'app_user',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('primary_address', sa.String(), nullable=True,
                  comment='Address on the primary ledger (reward mint destination)'),
        sa.Column('secondary_address', sa.String(), nullable=True,
                  comment='Address on the secondary ledger (reputation relay target)'),
        sa.Column('reputation', sa.Integer(), nullable=False, server_default='0',
                  comment='Local mirror of secondary-ledger reputation'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )

    # -- 2. Submissions --
    op.create_table(
        'submission',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('app_user.id'), nullable=False),
        sa.Column('task_id', sa.String(), nullable=False),
        sa.Column('result_hash', sa.String(), nullable=False),
        sa.Column('storage_uri', sa.String(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING',
                  comment='PENDING | APPROVED | REJECTED'),
        sa.Column('quality_score', sa.Integer(), nullable=True,
                  comment='0-100, null until scored'),
        sa.Column('metadata', sa.JSON(), nullable=False,
                  comment='Contributor metadata plus the embedded quality assessment'),
        sa.Column('reward_amount', sa.String(), nullable=True,
                  comment='Whole-unit decimal string'),
        sa.Column('reward_tx_ref', sa.String(), nullable=True),
        sa.Column('reward_error', sa.String(), nullable=True,
                  comment='Why the reward mint failed; set means manual retry needed'),
        sa.Column('approval_tx_ref', sa.String(), nullable=True,
                  comment='Primary-ledger approval transaction'),
        sa.Column('reviewer_id', sa.String(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_claimed_at', sa.DateTime(timezone=True), nullable=True,
                  comment='Set while an approve or reject is in flight; guards concurrent decisions'),
        sa.Column('relay_tx_ref', sa.String(), nullable=True,
                  comment='Secondary-ledger reputation transaction; completion marker'),
        sa.Column('relay_claimed_at', sa.DateTime(timezone=True), nullable=True,
                  comment='Set when a relay job is enqueued; guards duplicate enqueue'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_submission_status_relay', 'submission', ['status', 'relay_tx_ref'])
    op.create_index('ix_submission_user', 'submission', ['user_id'])

    # -- 3. Relay job queue --
    op.create_table(
        'relay_job',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('submission_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='queued',
                  comment='queued | active | completed | failed'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('available_at', sa.DateTime(timezone=True), nullable=False,
                  comment='Earliest time the job may run (backoff)'),
        sa.Column('last_error', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_relay_job_status_available', 'relay_job', ['status', 'available_at'])
    op.create_index(
        'uq_relay_job_open', 'relay_job', ['submission_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('queued', 'active')"),
        sqlite_where=sa.text("status IN ('queued', 'active')"),
    )


def downgrade() -> None:
    op.drop_index('uq_relay_job_open', table_name='relay_job')
    op.drop_index('ix_relay_job_status_available', table_name='relay_job')
    op.drop_table('relay_job')

    op.drop_index('ix_submission_user', table_name='submission')
    op.drop_index('ix_submission_status_relay', table_name='submission')
    op.drop_table('submission')

    op.drop_table('app_user')
