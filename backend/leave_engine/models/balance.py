# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase, now_utc


class LeaveBalance(UUIDBase, table=True):
    """Per-employee, per-leave-type, per-year balance.

    Invariant: remaining = allocated + carry_forward - used - pending.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_key"),
        sa.CheckConstraint("used >= 0 AND pending >= 0 AND remaining >= 0", name="ck_leave_balance_non_negative"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type: str = Field(max_length=50)
    year: int = Field(index=True)
    allocated: Decimal = Field(default=Decimal(0), max_digits=6, decimal_places=1)
    used: Decimal = Field(default=Decimal(0), max_digits=6, decimal_places=1)
    pending: Decimal = Field(default=Decimal(0), max_digits=6, decimal_places=1)
    remaining: Decimal = Field(default=Decimal(0), max_digits=6, decimal_places=1)
    carry_forward: Decimal = Field(default=Decimal(0), max_digits=6, decimal_places=1)
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
