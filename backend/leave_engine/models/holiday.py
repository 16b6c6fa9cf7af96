# ruff: noqa: TC003
from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_engine.models.base import UUIDBase
from leave_engine.models.enums import HolidayType


class Holiday(UUIDBase, table=True):
    """A designated non-working date. RECURRING holidays repeat on their month-day every year."""

    __tablename__ = "holiday"
    __table_args__ = (sa.UniqueConstraint("date", "name", name="uq_holiday_date_name"),)

    date: datetime.date = Field(index=True)
    name: str = Field(max_length=255)
    holiday_type: str = Field(
        default=HolidayType.ONE_TIME, max_length=20, sa_column_kwargs={"server_default": "ONE_TIME"}
    )
    recurring_date: str | None = Field(default=None, max_length=5, index=True)
    is_active: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
    is_optional: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
    is_paid: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
