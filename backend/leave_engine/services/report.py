"""Reporting service: leave utilization across balances."""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_engine.models.balance import LeaveBalance
from leave_engine.models.enums import LeaveType
from leave_engine.schemas.report import (
    LeaveTypeUtilization,
    UtilizationDetail,
    UtilizationReportResponse,
    UtilizationSummary,
)
from leave_engine.services.employee import get_employee_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

ZERO = Decimal(0)


def utilization_rate(used: Decimal, allocated: Decimal) -> float:
    """Percentage of allocated days already used, to two decimals. Zero when nothing is allocated."""
    if allocated <= ZERO:
        return 0.0
    return round(float(used / allocated * 100), 2)


async def get_utilization_report(
    session: AsyncSession,
    year: int,
    leave_type: LeaveType | None = None,
    department: str | None = None,
) -> UtilizationReportResponse:
    """Aggregate allocated/used/pending/remaining days for a year.

    Department filtering is resolved through the employee directory, so
    balances of employees unknown to it are excluded when a department is given.
    """
    query = select(LeaveBalance).where(col(LeaveBalance.year) == year)
    if leave_type is not None:
        query = query.where(col(LeaveBalance.leave_type) == leave_type.value)
    result = await session.execute(query.order_by(col(LeaveBalance.employee_id), col(LeaveBalance.leave_type)))
    balances = list(result.scalars().all())

    directory = {e.id: e for e in await get_employee_service().list_employees()}
    if department is not None:
        balances = [
            b for b in balances if b.employee_id in directory and directory[b.employee_id].department == department
        ]

    details: list[UtilizationDetail] = []
    by_type: dict[str, list[LeaveBalance]] = defaultdict(list)
    for balance in balances:
        employee = directory.get(balance.employee_id)
        details.append(
            UtilizationDetail(
                employee_id=balance.employee_id,
                employee_name=employee.full_name if employee else None,
                department=employee.department if employee else None,
                leave_type=LeaveType(balance.leave_type),
                allocated=balance.allocated,
                carry_forward=balance.carry_forward,
                used=balance.used,
                pending=balance.pending,
                remaining=balance.remaining,
            )
        )
        by_type[balance.leave_type].append(balance)

    total_allocated = sum((b.allocated for b in balances), ZERO)
    total_used = sum((b.used for b in balances), ZERO)
    summary = UtilizationSummary(
        total_employees=len({b.employee_id for b in balances}),
        total_allocated=total_allocated,
        total_used=total_used,
        total_pending=sum((b.pending for b in balances), ZERO),
        total_remaining=sum((b.remaining for b in balances), ZERO),
        utilization_rate=utilization_rate(total_used, total_allocated),
    )

    by_leave_type: dict[str, LeaveTypeUtilization] = {}
    for type_name, rows in sorted(by_type.items()):
        allocated = sum((r.allocated for r in rows), ZERO)
        used = sum((r.used for r in rows), ZERO)
        by_leave_type[type_name] = LeaveTypeUtilization(
            allocated=allocated,
            used=used,
            pending=sum((r.pending for r in rows), ZERO),
            remaining=sum((r.remaining for r in rows), ZERO),
            employee_count=len({r.employee_id for r in rows}),
            utilization_rate=utilization_rate(used, allocated),
        )

    return UtilizationReportResponse(
        year=year,
        leave_type=leave_type,
        department=department,
        summary=summary,
        by_leave_type=by_leave_type,
        details=details,
    )
