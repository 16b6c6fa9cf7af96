from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import and_, extract, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.exceptions import AppError, NotFoundError
from leave_engine.models.enums import HolidayType
from leave_engine.models.holiday import Holiday
from leave_engine.schemas.holiday import HolidayListResponse, HolidayResponse

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.holiday import CreateHolidayRequest, UpdateHolidayRequest


class HolidayCalendar:
    """Active holidays for a date window, indexed for per-date lookups."""

    def __init__(self, holidays: Sequence[Holiday]) -> None:
        self._by_date: dict[date, Holiday] = {}
        self._by_month_day: dict[str, Holiday] = {}
        for holiday in holidays:
            if not holiday.is_active:
                continue
            if holiday.holiday_type == HolidayType.RECURRING and holiday.recurring_date:
                self._by_month_day.setdefault(holiday.recurring_date, holiday)
            else:
                self._by_date.setdefault(holiday.date, holiday)

    @classmethod
    async def load(cls, session: AsyncSession, start_date: date, end_date: date) -> HolidayCalendar:
        """Fetch active one-time holidays in range plus every active recurring holiday."""
        result = await session.execute(
            select(Holiday)
            .where(
                col(Holiday.is_active).is_(True),
                or_(
                    col(Holiday.holiday_type) == HolidayType.RECURRING.value,
                    and_(col(Holiday.date) >= start_date, col(Holiday.date) <= end_date),
                ),
            )
            .order_by(col(Holiday.date))
        )
        return cls(list(result.scalars().all()))

    def holiday_for(self, on_date: date) -> Holiday | None:
        holiday = self._by_date.get(on_date)
        if holiday is not None:
            return holiday
        return self._by_month_day.get(on_date.strftime("%m-%d"))

    def is_holiday(self, on_date: date) -> bool:
        return self.holiday_for(on_date) is not None


async def find_holiday(session: AsyncSession, on_date: date) -> Holiday | None:
    """Return the active holiday falling on ``on_date``, if any."""
    calendar = await HolidayCalendar.load(session, on_date, on_date)
    return calendar.holiday_for(on_date)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


def _build_holiday_response(holiday: Holiday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        date=holiday.date,
        name=holiday.name,
        holiday_type=HolidayType(holiday.holiday_type),
        recurring_date=holiday.recurring_date,
        is_active=holiday.is_active,
        is_optional=holiday.is_optional,
        is_paid=holiday.is_paid,
    )


async def create_holiday(
    session: AsyncSession,
    payload: CreateHolidayRequest,
) -> HolidayResponse:
    """Create a holiday."""
    holiday = Holiday(
        date=payload.date,
        name=payload.name,
        holiday_type=payload.holiday_type.value,
        recurring_date=payload.recurring_date,
        is_active=payload.is_active,
        is_optional=payload.is_optional,
        is_paid=payload.is_paid,
    )
    session.add(holiday)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise AppError("Holiday already exists for this date", status_code=409) from None

    await session.commit()
    await session.refresh(holiday)
    return _build_holiday_response(holiday)


async def list_holidays(
    session: AsyncSession,
    year: int | None = None,
    include_inactive: bool = False,
    offset: int = 0,
    limit: int = 50,
) -> HolidayListResponse:
    """List holidays with optional year filter. Recurring holidays are listed for every year."""
    base_filter = []
    if not include_inactive:
        base_filter.append(col(Holiday.is_active).is_(True))
    if year is not None:
        base_filter.append(
            or_(
                extract("year", col(Holiday.date)) == year,
                col(Holiday.holiday_type) == HolidayType.RECURRING.value,
            )
        )

    count_result = await session.execute(select(func.count()).select_from(Holiday).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Holiday).where(*base_filter).order_by(col(Holiday.date)).offset(offset).limit(limit)
    )
    holidays = list(result.scalars().all())

    return HolidayListResponse(
        items=[_build_holiday_response(h) for h in holidays],
        total=total,
    )


async def get_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> Holiday:
    """Get a single holiday or raise 404."""
    result = await session.execute(select(Holiday).where(col(Holiday.id) == holiday_id))
    holiday = result.scalar_one_or_none()
    if holiday is None:
        raise NotFoundError("Holiday", holiday_id)
    return holiday


async def update_holiday(
    session: AsyncSession,
    holiday_id: uuid.UUID,
    payload: UpdateHolidayRequest,
) -> HolidayResponse:
    holiday = await get_holiday(session, holiday_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(holiday, field, value)
    await session.commit()
    await session.refresh(holiday)
    return _build_holiday_response(holiday)


async def delete_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> None:
    """Delete a holiday."""
    holiday = await get_holiday(session, holiday_id)
    await session.delete(holiday)
    await session.commit()
