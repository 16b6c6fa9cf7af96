# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query
from pydantic import BaseModel

from leave_engine.api.deps import AuthDep
from leave_engine.config import get_settings
from leave_engine.db import SessionDep
from leave_engine.schemas.calendar import (
    AttendanceRequirementResponse,
    DateRangeStatusResponse,
    DayStatusResponse,
    LeaveDurationResponse,
    MonthlySummaryResponse,
)
from leave_engine.services import day_status as day_status_service
from leave_engine.services.duration import calculate_leave_duration

calendar_router = APIRouter(
    prefix="/calendar",
    tags=["calendar"],
)


class WorkingDaysCountResponse(BaseModel):
    start_date: date
    end_date: date
    working_days: int


@calendar_router.get("/day-status", response_model=DayStatusResponse)
async def get_day_status(
    session: SessionDep,
    auth: AuthDep,
    on_date: date = Query(alias="date"),
    employee_id: uuid.UUID | None = Query(default=None),
) -> DayStatusResponse:
    """Resolve one date as weekend, holiday, leave or working day."""
    return await day_status_service.get_day_status(session, on_date, employee_id)


@calendar_router.get("/range-status", response_model=DateRangeStatusResponse)
async def get_date_range_status(
    session: SessionDep,
    auth: AuthDep,
    start_date: date = Query(),
    end_date: date = Query(),
    employee_id: uuid.UUID | None = Query(default=None),
) -> DateRangeStatusResponse:
    """Resolve every date of an inclusive range."""
    return await day_status_service.get_date_range_status(session, start_date, end_date, employee_id)


@calendar_router.get("/monthly-summary", response_model=MonthlySummaryResponse)
async def get_monthly_summary(
    session: SessionDep,
    auth: AuthDep,
    year: int = Query(ge=2000, le=2100),
    month: int = Query(ge=1, le=12),
    employee_id: uuid.UUID | None = Query(default=None),
) -> MonthlySummaryResponse:
    return await day_status_service.get_monthly_summary(session, year, month, employee_id)


@calendar_router.get("/working-days", response_model=WorkingDaysCountResponse)
async def get_working_days_count(
    session: SessionDep,
    auth: AuthDep,
    start_date: date = Query(),
    end_date: date = Query(),
    employee_id: uuid.UUID | None = Query(default=None),
) -> WorkingDaysCountResponse:
    count = await day_status_service.get_working_days_count(session, start_date, end_date, employee_id)
    return WorkingDaysCountResponse(start_date=start_date, end_date=end_date, working_days=count)


@calendar_router.get("/attendance-requirement", response_model=AttendanceRequirementResponse)
async def get_attendance_requirement(
    session: SessionDep,
    auth: AuthDep,
    on_date: date = Query(alias="date"),
    employee_id: uuid.UUID = Query(),
) -> AttendanceRequirementResponse:
    """Whether attendance is expected from an employee on a date."""
    return await day_status_service.get_attendance_requirement(session, on_date, employee_id)


@calendar_router.get("/leave-duration", response_model=LeaveDurationResponse)
async def get_leave_duration(
    session: SessionDep,
    auth: AuthDep,
    start_date: date = Query(),
    end_date: date = Query(),
    is_half_day: bool = Query(default=False),
    exclude_weekends: bool | None = Query(default=None),
    exclude_holidays: bool | None = Query(default=None),
) -> LeaveDurationResponse:
    """Count the days of a range. Exclusion flags default to the configured leave-charging rules."""
    settings = get_settings()
    return await calculate_leave_duration(
        session,
        start_date,
        end_date,
        is_half_day=is_half_day,
        exclude_weekends=settings.exclude_weekends_from_leave if exclude_weekends is None else exclude_weekends,
        exclude_holidays=settings.exclude_holidays_from_leave if exclude_holidays is None else exclude_holidays,
    )
