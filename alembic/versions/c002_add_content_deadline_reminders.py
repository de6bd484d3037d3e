"""Add content deadline reminder flags to collaborations

Revision ID: c002_deadline_reminders
Revises: c001_collaboration_ledger
Create Date: 2026-10-18

One nullable timestamp per reminder stage. Set once by the deadline sweep
so a stage is never sent twice.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'c002_deadline_reminders'
down_revision = 'c001_collaboration_ledger'
branch_labels = None
depends_on = None

REMINDER_COLUMNS = (
    'deadline_3day_warned_at',
    'deadline_1day_warned_at',
    'deadline_day_of_warned_at',
    'deadline_passed_notified_at',
)


def upgrade() -> None:
    for name in REMINDER_COLUMNS:
        op.add_column('collaborations', sa.Column(name, sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table('collaborations') as batch_op:
        for name in reversed(REMINDER_COLUMNS):
            batch_op.drop_column(name)
