from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from leave_engine.exceptions import InvalidRangeError
from leave_engine.schemas.calendar import LeaveDurationResponse
from leave_engine.services.day_status import iter_dates
from leave_engine.services.holiday import HolidayCalendar
from leave_engine.services.working_rule import DateRuleResolver

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

HALF_DAY = Decimal("0.5")


def compute_leave_duration(
    start_date: date,
    end_date: date,
    *,
    is_half_day: bool = False,
    exclude_weekends: bool = False,
    exclude_holidays: bool = False,
    rules: DateRuleResolver | None = None,
    holidays: HolidayCalendar | None = None,
) -> LeaveDurationResponse:
    """Count the days in an inclusive date range.

    Half-day requests always count 0.5. Without exclusions every calendar day
    is a working day. With exclusions each date is classified as weekend
    (first) or holiday, and only the remainder counts as working days.
    Employee leave is never consulted here.
    """
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())

    if is_half_day:
        return LeaveDurationResponse(
            total_days=HALF_DAY,
            working_days=HALF_DAY,
            weekend_days=0,
            holiday_days=0,
            calculation_method="half_day",
        )

    total_days = (end_date - start_date).days + 1

    if not exclude_weekends and not exclude_holidays:
        return LeaveDurationResponse(
            total_days=Decimal(total_days),
            working_days=Decimal(total_days),
            weekend_days=0,
            holiday_days=0,
            calculation_method="calendar_days",
        )

    rules = rules or DateRuleResolver([])
    holidays = holidays or HolidayCalendar([])

    working_days = 0
    weekend_days = 0
    holiday_days = 0
    for current in iter_dates(start_date, end_date):
        if exclude_weekends and rules.is_weekend(current):
            weekend_days += 1
        elif exclude_holidays and holidays.is_holiday(current):
            holiday_days += 1
        else:
            working_days += 1

    return LeaveDurationResponse(
        total_days=Decimal(total_days),
        working_days=Decimal(working_days),
        weekend_days=weekend_days,
        holiday_days=holiday_days,
        calculation_method="business_days",
    )


async def calculate_leave_duration(
    session: AsyncSession,
    start_date: date,
    end_date: date,
    *,
    is_half_day: bool = False,
    exclude_weekends: bool = False,
    exclude_holidays: bool = False,
) -> LeaveDurationResponse:
    """Database-backed wrapper around :func:`compute_leave_duration`."""
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())

    rules = await DateRuleResolver.load(session) if exclude_weekends else None
    holidays = await HolidayCalendar.load(session, start_date, end_date) if exclude_holidays else None
    return compute_leave_duration(
        start_date,
        end_date,
        is_half_day=is_half_day,
        exclude_weekends=exclude_weekends,
        exclude_holidays=exclude_holidays,
        rules=rules,
        holidays=holidays,
    )
