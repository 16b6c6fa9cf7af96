# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel

from leave_engine.models.enums import DayStatus, DayType
from leave_engine.schemas.common import Days


class DayStatusResponse(BaseModel):
    """Resolved status of one date. ``detail`` carries the holiday name or leave type."""

    date: date
    day_of_week: int
    status: DayStatus
    type: DayType
    attendance_required: bool
    reason: str
    detail: str | None = None
    holiday_id: uuid.UUID | None = None
    leave_request_id: uuid.UUID | None = None


class DateRangeStatusResponse(BaseModel):
    start_date: date
    end_date: date
    items: list[DayStatusResponse]
    total: int


class NonWorkingBreakdown(BaseModel):
    weekends: int = 0
    holidays: int = 0
    leaves: int = 0
    total: int = 0


class MonthlySummaryResponse(BaseModel):
    """Per-month counts of resolved day statuses."""

    year: int
    month: int
    total_days: int
    working_days: int
    non_working_days: NonWorkingBreakdown
    day_statuses: list[DayStatusResponse]


class AttendanceRequirementResponse(BaseModel):
    required: bool
    status: DayStatus
    reason: str
    auto_status: str | None


class LeaveDurationResponse(BaseModel):
    """Day count for a leave range, split into working/weekend/holiday buckets."""

    total_days: Days
    working_days: Days
    weekend_days: int
    holiday_days: int
    calculation_method: str
