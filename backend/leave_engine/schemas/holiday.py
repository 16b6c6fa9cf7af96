# ruff: noqa: TC003
from __future__ import annotations

import re
import uuid
from datetime import date
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_engine.models.enums import HolidayType

_MONTH_DAY = re.compile(r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")


class CreateHolidayRequest(BaseModel):
    """Request body for creating a holiday.

    For RECURRING holidays ``recurring_date`` defaults to the month-day of ``date``.
    """

    date: date
    name: str = Field(min_length=1, max_length=255)
    holiday_type: HolidayType = HolidayType.ONE_TIME
    recurring_date: str | None = None
    is_active: bool = True
    is_optional: bool = False
    is_paid: bool = True

    @model_validator(mode="after")
    def _validate_recurrence(self) -> Self:
        if self.holiday_type == HolidayType.RECURRING:
            if self.recurring_date is None:
                self.recurring_date = self.date.strftime("%m-%d")
            elif not _MONTH_DAY.match(self.recurring_date):
                msg = "recurring_date must be formatted as MM-DD"
                raise ValueError(msg)
        else:
            self.recurring_date = None
        return self


class UpdateHolidayRequest(BaseModel):
    """Partial update for a holiday. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None
    is_optional: bool | None = None
    is_paid: bool | None = None


class HolidayResponse(BaseModel):
    """Response schema for a holiday."""

    id: uuid.UUID
    date: date
    name: str
    holiday_type: HolidayType
    recurring_date: str | None
    is_active: bool
    is_optional: bool
    is_paid: bool


class HolidayListResponse(BaseModel):
    """Paginated list of holidays."""

    items: list[HolidayResponse]
    total: int
