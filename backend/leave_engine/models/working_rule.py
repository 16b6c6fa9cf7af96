# ruff: noqa: TC003
from __future__ import annotations

from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import TimestampMixin, UUIDBase


class WorkingRule(UUIDBase, TimestampMixin, table=True):
    """Time-bounded definition of which weekdays are worked (0 = Sunday ... 6 = Saturday).

    Rules are never edited once superseded: a new rule is created and the
    previous open-ended rule is closed the day before it starts.
    """

    __tablename__ = "working_rule"
    __table_args__ = (sa.Index("ix_working_rule_window", "effective_from", "effective_to"),)

    rule_name: str = Field(max_length=255)
    working_days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5], sa_type=sa.JSON)
    weekend_days: list[int] = Field(default_factory=lambda: [0, 6], sa_type=sa.JSON)
    effective_from: date
    effective_to: date | None = None
    is_default: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
    is_active: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
