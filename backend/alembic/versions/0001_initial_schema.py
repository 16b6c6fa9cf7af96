"""Initial schema: working rules, holidays, leave requests, balances and balance entries.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _days(name: str, **kwargs: object) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=6, scale=1), nullable=False, **kwargs)


def upgrade() -> None:
    op.create_table(
        "working_rule",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("rule_name", sa.String(length=255), nullable=False),
        sa.Column("working_days", sa.JSON(), nullable=False),
        sa.Column("weekend_days", sa.JSON(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_working_rule_window", "working_rule", ["effective_from", "effective_to"])

    op.create_table(
        "holiday",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("holiday_type", sa.String(length=20), server_default="ONE_TIME", nullable=False),
        sa.Column("recurring_date", sa.String(length=5), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_optional", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_paid", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.UniqueConstraint("date", "name", name="uq_holiday_date_name"),
    )
    op.create_index("ix_holiday_date", "holiday", ["date"])
    op.create_index("ix_holiday_recurring_date", "holiday", ["recurring_date"])

    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        _days("total_days"),
        sa.Column("is_half_day", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("half_day_period", sa.String(length=20), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=50), server_default="pending", nullable=False),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_leave_type", "leave_request", ["leave_type"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_employee_status", "leave_request", ["employee_id", "status"])
    op.create_index(
        "ix_leave_request_employee_window", "leave_request", ["employee_id", "start_date", "end_date"]
    )

    op.create_table(
        "leave_balance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type", sa.String(length=50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        _days("allocated"),
        _days("used"),
        _days("pending"),
        _days("remaining"),
        _days("carry_forward"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_key"),
        sa.CheckConstraint(
            "used >= 0 AND pending >= 0 AND remaining >= 0", name="ck_leave_balance_non_negative"
        ),
    )
    op.create_index("ix_leave_balance_employee_id", "leave_balance", ["employee_id"])
    op.create_index("ix_leave_balance_year", "leave_balance", ["year"])

    op.create_table(
        "leave_balance_entry",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "balance_id", sa.Uuid(), sa.ForeignKey("leave_balance.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type", sa.String(length=50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("entry_type", sa.String(length=50), nullable=False),
        _days("days"),
        sa.Column("source_type", sa.String(length=50), nullable=False),
        sa.Column("source_id", sa.String(length=255), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_balance_entry_idempotency"),
    )
    op.create_index("ix_leave_balance_entry_balance_id", "leave_balance_entry", ["balance_id"])
    op.create_index("ix_balance_entry_key", "leave_balance_entry", ["employee_id", "leave_type", "year"])


def downgrade() -> None:
    op.drop_table("leave_balance_entry")
    op.drop_table("leave_balance")
    op.drop_table("leave_request")
    op.drop_table("holiday")
    op.drop_table("working_rule")
