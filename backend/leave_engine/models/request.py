# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request. Mutated only by lifecycle transitions, never deleted."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_employee_status", "employee_id", "status"),
        sa.Index("ix_leave_request_employee_window", "employee_id", "start_date", "end_date"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type: str = Field(max_length=50, index=True)
    start_date: date
    end_date: date
    total_days: Decimal = Field(max_digits=6, decimal_places=1)
    is_half_day: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
    half_day_period: str | None = Field(default=None, max_length=20)
    reason: str | None = None
    status: str = Field(
        default=LeaveStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejection_reason: str | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
