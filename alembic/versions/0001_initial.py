"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


REMINDER_TYPES = ("follow_up", "payment_due", "meeting", "deadline", "custom")
REMINDER_STATUSES = ("pending", "sent", "dismissed", "snoozed")
RECURRENCES = ("none", "daily", "weekly", "monthly")


def upgrade() -> None:
    reminder_type = sa.Enum(*REMINDER_TYPES, name="reminder_type")
    reminder_status = sa.Enum(*REMINDER_STATUSES, name="reminder_status")
    reminder_recurrence = sa.Enum(*RECURRENCES, name="reminder_recurrence")

    op.create_table(
        "reminders",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("task_id", sa.String(length=64), nullable=True),
        sa.Column("vendor_id", sa.String(length=64), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("reminder_type", reminder_type, nullable=False),
        sa.Column("remind_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recurrence", reminder_recurrence, nullable=False, server_default=sa.text("'none'")),
        sa.Column("notification_channels", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("status", reminder_status, nullable=False, server_default=sa.text("'pending'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_reminders_task_id", "reminders", ["task_id"], unique=False)
    op.create_index("ix_reminders_vendor_id", "reminders", ["vendor_id"], unique=False)
    op.create_index("ix_reminders_status_remind_at", "reminders", ["status", "remind_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_reminders_status_remind_at", table_name="reminders")
    op.drop_index("ix_reminders_vendor_id", table_name="reminders")
    op.drop_index("ix_reminders_task_id", table_name="reminders")
    op.drop_table("reminders")

    bind = op.get_bind()
    for name in ("reminder_type", "reminder_status", "reminder_recurrence"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
