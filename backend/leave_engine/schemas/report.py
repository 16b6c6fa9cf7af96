# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leave_engine.models.enums import LeaveType
from leave_engine.schemas.common import Days


class UtilizationSummary(BaseModel):
    """Totals across every balance row matched by the report filters."""

    total_employees: int
    total_allocated: Days
    total_used: Days
    total_pending: Days
    total_remaining: Days
    utilization_rate: float


class LeaveTypeUtilization(BaseModel):
    allocated: Days
    used: Days
    pending: Days
    remaining: Days
    employee_count: int
    utilization_rate: float


class UtilizationDetail(BaseModel):
    employee_id: uuid.UUID
    employee_name: str | None
    department: str | None
    leave_type: LeaveType
    allocated: Days
    carry_forward: Days
    used: Days
    pending: Days
    remaining: Days


class UtilizationReportResponse(BaseModel):
    year: int
    leave_type: LeaveType | None
    department: str | None
    summary: UtilizationSummary
    by_leave_type: dict[str, LeaveTypeUtilization]
    details: list[UtilizationDetail]
