"""Day-status resolution: weekend, then holiday, then approved leave, then working day.

This is the only place the priority chain is implemented; calendar views,
attendance checks and leave validation all resolve dates through it.
"""

# ruff: noqa: TC003
from __future__ import annotations

import calendar
import uuid
from collections.abc import Iterator, Sequence
from datetime import date, timedelta
from typing import TYPE_CHECKING

from leave_engine.exceptions import InvalidRangeError
from leave_engine.models.enums import DayStatus, DayType
from leave_engine.models.request import LeaveRequest
from leave_engine.schemas.calendar import (
    AttendanceRequirementResponse,
    DateRangeStatusResponse,
    DayStatusResponse,
    MonthlySummaryResponse,
    NonWorkingBreakdown,
)
from leave_engine.services.holiday import HolidayCalendar
from leave_engine.services.overlap import get_leaves_in_range
from leave_engine.services.working_rule import DateRuleResolver, day_of_week

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_AUTO_ATTENDANCE_STATUS = {
    DayStatus.WEEKEND: "weekend",
    DayStatus.HOLIDAY: "holiday",
    DayStatus.LEAVE: "leave",
}


def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every date from start to end, both inclusive."""
    current = start_date
    one_day = timedelta(days=1)
    while current <= end_date:
        yield current
        current += one_day


class DayStatusResolver:
    """Resolves the status of dates from preloaded rules, holidays and approved leave."""

    def __init__(
        self,
        rules: DateRuleResolver,
        holidays: HolidayCalendar,
        leaves: Sequence[LeaveRequest] = (),
    ) -> None:
        self._rules = rules
        self._holidays = holidays
        self._leaves = list(leaves)

    @classmethod
    async def load(
        cls,
        session: AsyncSession,
        start_date: date,
        end_date: date,
        employee_id: uuid.UUID | None = None,
    ) -> DayStatusResolver:
        rules = await DateRuleResolver.load(session)
        holidays = await HolidayCalendar.load(session, start_date, end_date)
        leaves: list[LeaveRequest] = []
        if employee_id is not None:
            leaves = await get_leaves_in_range(session, start_date, end_date, employee_id)
        return cls(rules, holidays, leaves)

    def _leave_for(self, on_date: date) -> LeaveRequest | None:
        for leave in self._leaves:
            if leave.start_date <= on_date <= leave.end_date:
                return leave
        return None

    def resolve(self, on_date: date) -> DayStatusResponse:
        dow = day_of_week(on_date)

        if self._rules.is_weekend(on_date):
            return DayStatusResponse(
                date=on_date,
                day_of_week=dow,
                status=DayStatus.WEEKEND,
                type=DayType.NON_WORKING,
                attendance_required=False,
                reason="Weekend day",
            )

        holiday = self._holidays.holiday_for(on_date)
        if holiday is not None:
            return DayStatusResponse(
                date=on_date,
                day_of_week=dow,
                status=DayStatus.HOLIDAY,
                type=DayType.NON_WORKING,
                attendance_required=False,
                reason=holiday.name,
                detail=holiday.name,
                holiday_id=holiday.id,
            )

        leave = self._leave_for(on_date)
        if leave is not None:
            return DayStatusResponse(
                date=on_date,
                day_of_week=dow,
                status=DayStatus.LEAVE,
                type=DayType.NON_WORKING,
                attendance_required=False,
                reason=f"{leave.leave_type.capitalize()} Leave",
                detail=leave.leave_type,
                leave_request_id=leave.id,
            )

        return DayStatusResponse(
            date=on_date,
            day_of_week=dow,
            status=DayStatus.WORKING_DAY,
            type=DayType.WORKING,
            attendance_required=True,
            reason="Regular working day",
        )

    def resolve_range(self, start_date: date, end_date: date) -> list[DayStatusResponse]:
        return [self.resolve(d) for d in iter_dates(start_date, end_date)]


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())


def _breakdown(statuses: Sequence[DayStatusResponse]) -> NonWorkingBreakdown:
    weekends = sum(1 for s in statuses if s.status == DayStatus.WEEKEND)
    holidays = sum(1 for s in statuses if s.status == DayStatus.HOLIDAY)
    leaves = sum(1 for s in statuses if s.status == DayStatus.LEAVE)
    return NonWorkingBreakdown(
        weekends=weekends, holidays=holidays, leaves=leaves, total=weekends + holidays + leaves
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_day_status(
    session: AsyncSession,
    on_date: date,
    employee_id: uuid.UUID | None = None,
) -> DayStatusResponse:
    """Status of a single date, optionally taking an employee's approved leave into account."""
    resolver = await DayStatusResolver.load(session, on_date, on_date, employee_id)
    return resolver.resolve(on_date)


async def get_date_range_status(
    session: AsyncSession,
    start_date: date,
    end_date: date,
    employee_id: uuid.UUID | None = None,
) -> DateRangeStatusResponse:
    """One status per date in the inclusive range."""
    _check_range(start_date, end_date)
    resolver = await DayStatusResolver.load(session, start_date, end_date, employee_id)
    items = resolver.resolve_range(start_date, end_date)
    return DateRangeStatusResponse(start_date=start_date, end_date=end_date, items=items, total=len(items))


async def get_monthly_summary(
    session: AsyncSession,
    year: int,
    month: int,
    employee_id: uuid.UUID | None = None,
) -> MonthlySummaryResponse:
    """Aggregate counts by status for a calendar month."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    resolver = await DayStatusResolver.load(session, first, last, employee_id)
    statuses = resolver.resolve_range(first, last)

    return MonthlySummaryResponse(
        year=year,
        month=month,
        total_days=len(statuses),
        working_days=sum(1 for s in statuses if s.status == DayStatus.WORKING_DAY),
        non_working_days=_breakdown(statuses),
        day_statuses=statuses,
    )


async def get_working_days_count(
    session: AsyncSession,
    start_date: date,
    end_date: date,
    employee_id: uuid.UUID | None = None,
) -> int:
    _check_range(start_date, end_date)
    resolver = await DayStatusResolver.load(session, start_date, end_date, employee_id)
    return sum(1 for s in resolver.resolve_range(start_date, end_date) if s.status == DayStatus.WORKING_DAY)


async def get_attendance_requirement(
    session: AsyncSession,
    on_date: date,
    employee_id: uuid.UUID,
) -> AttendanceRequirementResponse:
    """Whether the employee is expected to attend on a date, and the automatic status if not."""
    status = await get_day_status(session, on_date, employee_id)
    return AttendanceRequirementResponse(
        required=status.attendance_required,
        status=status.status,
        reason=status.reason,
        auto_status=_AUTO_ATTENDANCE_STATUS.get(status.status),
    )
