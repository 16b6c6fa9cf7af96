# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase, now_utc


class LeaveBalanceEntry(UUIDBase, table=True):
    """Append-only record of every operation applied to a balance row."""

    __tablename__ = "leave_balance_entry"
    __table_args__ = (
        sa.Index("ix_balance_entry_key", "employee_id", "leave_type", "year"),
        sa.UniqueConstraint("source_type", "source_id", "entry_type", name="uq_balance_entry_idempotency"),
    )

    balance_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_balance.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    employee_id: uuid.UUID
    leave_type: str = Field(max_length=50)
    year: int
    entry_type: str = Field(max_length=50)
    days: Decimal = Field(max_digits=6, decimal_places=1)
    source_type: str = Field(max_length=50)
    source_id: str = Field(max_length=255)
    note: str | None = None
    actor_id: uuid.UUID | None = None
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
