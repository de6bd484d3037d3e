"""Create offers, agreements, collaborations and transition_logs tables

Revision ID: c001_collaboration_ledger
Revises:
Create Date: 2026-10-18

This migration creates the collaboration ledger:
- offers: Host proposals and their negotiation state
- agreements: Rendered contracts and signature timestamps
- collaborations: Post-acceptance lifecycle, payment and traffic state
- transition_logs: Append-only trail of every committed transition
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'c001_collaboration_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'offers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('creator_id', sa.String(), nullable=False),
        sa.Column('property_id', sa.String(), nullable=False),

        # Terms
        sa.Column('offer_type', sa.String(), nullable=False),
        sa.Column('cash_amount_minor', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stay_nights', sa.Integer(), nullable=True),
        sa.Column('traffic_bonus_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('traffic_bonus_threshold_clicks', sa.Integer(), nullable=True),
        sa.Column('traffic_bonus_amount_minor', sa.Integer(), nullable=True),
        sa.Column('deliverables', sa.JSON(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('content_deadline_days', sa.Integer(), nullable=False, server_default='30'),

        # Negotiation
        sa.Column('counter_cash_amount_minor', sa.Integer(), nullable=True),
        sa.Column('counter_message', sa.Text(), nullable=True),
        sa.Column('negotiation_round', sa.Integer(), nullable=False, server_default='1'),

        # Lifecycle
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('viewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiry_warning_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resent_from_id', sa.String(), nullable=True),
        sa.Column('terms_snapshot', sa.JSON(), nullable=True),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('row_version', sa.Integer(), nullable=False),
    )
    op.create_check_constraint(
        'ck_offers_cash_non_negative', 'offers', 'cash_amount_minor >= 0'
    )
    op.create_check_constraint(
        'ck_offers_counter_iff_countered',
        'offers',
        "(status = 'countered') = (counter_cash_amount_minor IS NOT NULL)",
    )
    op.create_index('ix_offers_host_id', 'offers', ['host_id'])
    op.create_index('ix_offers_creator_id', 'offers', ['creator_id'])
    op.create_index('ix_offers_property_id', 'offers', ['property_id'])
    op.create_index('ix_offers_status', 'offers', ['status'])
    op.create_index('idx_offers_open_expiry', 'offers', ['status', 'expires_at'])

    op.create_table(
        'agreements',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('collaboration_id', sa.String(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('agreement_text', sa.Text(), nullable=False),
        sa.Column('deal_type', sa.String(), nullable=False),
        sa.Column('cash_amount_minor', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stay_included', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('stay_nights', sa.Integer(), nullable=True),
        sa.Column('deliverables', sa.JSON(), nullable=False),
        sa.Column('traffic_bonus_threshold_clicks', sa.Integer(), nullable=True),
        sa.Column('traffic_bonus_amount_minor', sa.Integer(), nullable=True),
        sa.Column('content_deadline', sa.DateTime(timezone=True), nullable=False),

        # Signatures
        sa.Column('host_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('creator_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_fully_executed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('executed_at', sa.DateTime(timezone=True), nullable=True),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('row_version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_agreements_collaboration_id', 'agreements', ['collaboration_id'], unique=True)

    op.create_table(
        'collaborations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('offer_id', sa.String(), sa.ForeignKey('offers.id'), nullable=False, unique=True),
        sa.Column('agreement_id', sa.String(), sa.ForeignKey('agreements.id'), nullable=True, unique=True),
        sa.Column('host_id', sa.String(), nullable=False),
        sa.Column('creator_id', sa.String(), nullable=False),
        sa.Column('property_id', sa.String(), nullable=False),

        sa.Column('status', sa.String(), nullable=False, server_default='pending-agreement'),
        sa.Column('fee_pending', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),

        # Payment
        sa.Column('payment_status', sa.String(), nullable=False, server_default='unpaid'),
        sa.Column('payment_amount_minor', sa.Integer(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('platform_fee_status', sa.String(), nullable=False, server_default='not-required'),
        sa.Column('platform_fee_paid_at', sa.DateTime(timezone=True), nullable=True),

        # Content
        sa.Column('content_links', sa.JSON(), nullable=False),
        sa.Column('content_submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('content_approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('change_request_feedback', sa.Text(), nullable=True),

        # Traffic
        sa.Column('clicks_generated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('affiliate_token', sa.String(), nullable=True, unique=True),
        sa.Column('traffic_bonus_earned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('traffic_bonus_paid_at', sa.DateTime(timezone=True), nullable=True),

        # Cancellation
        sa.Column('cancellation_requested_by', sa.String(), nullable=True),
        sa.Column('cancellation_requested_by_role', sa.String(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancellation_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status_before_cancellation', sa.String(), nullable=True),
        sa.Column('cancellation_declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('row_version', sa.Integer(), nullable=False),
    )
    op.create_check_constraint(
        'ck_collaborations_clicks_non_negative', 'collaborations', 'clicks_generated >= 0'
    )
    op.create_index('ix_collaborations_host_id', 'collaborations', ['host_id'])
    op.create_index('ix_collaborations_creator_id', 'collaborations', ['creator_id'])
    op.create_index('ix_collaborations_property_id', 'collaborations', ['property_id'])
    op.create_index('ix_collaborations_status', 'collaborations', ['status'])

    op.create_table(
        'transition_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('entity_type', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('from_status', sa.String(50), nullable=True),
        sa.Column('to_status', sa.String(50), nullable=True),
        sa.Column('actor_id', sa.String(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_transition_logs_action', 'transition_logs', ['action'])
    op.create_index(
        'idx_transition_logs_entity', 'transition_logs', ['entity_type', 'entity_id', 'id']
    )


def downgrade() -> None:
    op.drop_table('transition_logs')
    op.drop_table('collaborations')
    op.drop_table('agreements')
    op.drop_table('offers')
