"""Attendance collaborator: the store that receives leave-derived attendance stamps."""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leave_engine.models.enums import AttendanceStatus, HalfDayPeriod, LeaveType

_LEAVE_LABELS: dict[str, str] = {
    LeaveType.SICK: "Sick leave",
    LeaveType.ANNUAL: "Annual leave",
    LeaveType.PERSONAL: "Personal leave",
    LeaveType.MATERNITY: "Maternity leave",
    LeaveType.PATERNITY: "Paternity leave",
    LeaveType.EMERGENCY: "Emergency leave",
    LeaveType.UNPAID: "Unpaid leave",
}

_PERIOD_SUFFIX: dict[str, str] = {
    HalfDayPeriod.MORNING: " (morning half)",
    HalfDayPeriod.AFTERNOON: " (afternoon half)",
}


class AttendanceRecord(BaseModel):
    """An attendance row as held by the attendance store."""

    employee_id: uuid.UUID
    date: date
    status: str
    status_reason: str
    source: str = "system"


@runtime_checkable
class AttendanceService(Protocol):
    """Interface for the Attendance Service."""

    async def upsert_attendance_record(
        self,
        employee_id: uuid.UUID,
        on_date: date,
        status: str,
        reason: str,
        source: str = "system",
    ) -> AttendanceRecord:
        """Create or overwrite the attendance record for one employee and date."""
        ...


class InMemoryAttendanceService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self.records: dict[tuple[uuid.UUID, date], AttendanceRecord] = {}

    async def upsert_attendance_record(
        self,
        employee_id: uuid.UUID,
        on_date: date,
        status: str,
        reason: str,
        source: str = "system",
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            employee_id=employee_id, date=on_date, status=status, status_reason=reason, source=source
        )
        self.records[(employee_id, on_date)] = record
        return record

    def records_for(self, employee_id: uuid.UUID) -> list[AttendanceRecord]:
        return sorted(
            (r for (emp, _), r in self.records.items() if emp == employee_id),
            key=lambda r: r.date,
        )


def leave_attendance_mapping(
    leave_type: str,
    is_half_day: bool,
    half_day_period: str | None,
) -> tuple[AttendanceStatus, str]:
    """Return the (status, reason) stamped on attendance for an approved leave.

    Derived only from the leave type and half-day fields so labels stay uniform.
    """
    label = _LEAVE_LABELS.get(leave_type, "Leave")
    if is_half_day:
        suffix = _PERIOD_SUFFIX.get(half_day_period or "", "")
        return AttendanceStatus.HALF_DAY, f"{label} - Half day{suffix}"
    return AttendanceStatus.LEAVE, label


_attendance_service: AttendanceService = InMemoryAttendanceService()


def get_attendance_service() -> AttendanceService:
    return _attendance_service


def set_attendance_service(service: AttendanceService) -> None:
    """Override the service (for testing or production wiring)."""
    global _attendance_service
    _attendance_service = service
