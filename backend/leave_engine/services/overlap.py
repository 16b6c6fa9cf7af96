# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_engine.exceptions import InvalidRangeError
from leave_engine.models.enums import LeaveStatus
from leave_engine.models.request import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# Rejected and cancelled requests never block new ones.
BLOCKING_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)


async def find_overlapping_request(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_request_id: uuid.UUID | None = None,
) -> LeaveRequest | None:
    """Return the earliest pending or approved request sharing at least one date with the range.

    Both ranges are closed, so ``existing.start <= new.end AND existing.end >= new.start``
    covers a new range starting inside, ending inside, containing, or contained
    by an existing one.
    """
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())

    query = select(LeaveRequest).where(
        col(LeaveRequest.employee_id) == employee_id,
        col(LeaveRequest.status).in_(BLOCKING_STATUSES),
        col(LeaveRequest.start_date) <= end_date,
        col(LeaveRequest.end_date) >= start_date,
    )
    if exclude_request_id is not None:
        query = query.where(col(LeaveRequest.id) != exclude_request_id)

    result = await session.execute(query.order_by(col(LeaveRequest.start_date)).limit(1))
    return result.scalar_one_or_none()


async def get_leaves_in_range(
    session: AsyncSession,
    start_date: date,
    end_date: date,
    employee_id: uuid.UUID | None = None,
    statuses: Sequence[str] = (LeaveStatus.APPROVED.value,),
) -> list[LeaveRequest]:
    """Requests in the given statuses that touch the window, ordered by start date."""
    query = select(LeaveRequest).where(
        col(LeaveRequest.status).in_(list(statuses)),
        col(LeaveRequest.start_date) <= end_date,
        col(LeaveRequest.end_date) >= start_date,
    )
    if employee_id is not None:
        query = query.where(col(LeaveRequest.employee_id) == employee_id)

    result = await session.execute(query.order_by(col(LeaveRequest.start_date)))
    return list(result.scalars().all())
