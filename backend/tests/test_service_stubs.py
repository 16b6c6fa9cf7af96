"""Tests for the Employee and Attendance service stubs."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from leave_engine.models.enums import AttendanceStatus
from leave_engine.services.attendance import (
    AttendanceService,
    InMemoryAttendanceService,
    leave_attendance_mapping,
)
from leave_engine.services.employee import EmployeeInfo, EmployeeService, InMemoryEmployeeService

EMPLOYEE_ID = uuid.uuid4()


def _make_employee(name: str = "Jane", department: str | None = None) -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        first_name=name,
        last_name="Doe",
        email=f"{name.lower()}@example.com",
        department=department,
    )


# ---------------------------------------------------------------------------
# InMemoryEmployeeService
# ---------------------------------------------------------------------------


async def test_employee_service_get_not_found() -> None:
    svc = InMemoryEmployeeService()
    assert await svc.get_employee(uuid.uuid4()) is None


async def test_employee_service_seed_and_get() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee(department="Engineering")
    svc.seed(emp)
    result = await svc.get_employee(emp.id)
    assert result is not None
    assert result.full_name == "Jane Doe"
    assert result.department == "Engineering"


async def test_employee_service_list() -> None:
    svc = InMemoryEmployeeService()
    assert await svc.list_employees() == []
    svc.seed(_make_employee("Alice"))
    svc.seed(_make_employee("Bob"))
    assert {e.first_name for e in await svc.list_employees()} == {"Alice", "Bob"}


def test_stubs_satisfy_protocols() -> None:
    assert isinstance(InMemoryEmployeeService(), EmployeeService)
    assert isinstance(InMemoryAttendanceService(), AttendanceService)


# ---------------------------------------------------------------------------
# InMemoryAttendanceService
# ---------------------------------------------------------------------------


async def test_attendance_upsert_overwrites() -> None:
    svc = InMemoryAttendanceService()
    await svc.upsert_attendance_record(EMPLOYEE_ID, date(2025, 3, 10), "present", "Checked in")
    record = await svc.upsert_attendance_record(
        EMPLOYEE_ID, date(2025, 3, 10), "leave", "Sick leave", source="leave"
    )
    assert record.source == "leave"
    assert len(svc.records) == 1
    assert svc.records[(EMPLOYEE_ID, date(2025, 3, 10))].status == "leave"


async def test_attendance_records_for_sorted_by_date() -> None:
    svc = InMemoryAttendanceService()
    await svc.upsert_attendance_record(EMPLOYEE_ID, date(2025, 3, 12), "leave", "Annual leave")
    await svc.upsert_attendance_record(EMPLOYEE_ID, date(2025, 3, 10), "leave", "Annual leave")
    await svc.upsert_attendance_record(uuid.uuid4(), date(2025, 3, 11), "leave", "Annual leave")
    assert [r.date for r in svc.records_for(EMPLOYEE_ID)] == [date(2025, 3, 10), date(2025, 3, 12)]


# ---------------------------------------------------------------------------
# leave_attendance_mapping
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("leave_type", "label"),
    [
        ("sick", "Sick leave"),
        ("annual", "Annual leave"),
        ("personal", "Personal leave"),
        ("maternity", "Maternity leave"),
        ("paternity", "Paternity leave"),
        ("emergency", "Emergency leave"),
        ("unpaid", "Unpaid leave"),
    ],
)
def test_full_day_mapping(leave_type: str, label: str) -> None:
    assert leave_attendance_mapping(leave_type, False, None) == (AttendanceStatus.LEAVE, label)


def test_half_day_mapping_includes_period() -> None:
    status, reason = leave_attendance_mapping("annual", True, "morning")
    assert status == AttendanceStatus.HALF_DAY
    assert reason == "Annual leave - Half day (morning half)"

    _, reason = leave_attendance_mapping("sick", True, "afternoon")
    assert reason == "Sick leave - Half day (afternoon half)"


def test_unknown_leave_type_falls_back_to_generic_label() -> None:
    assert leave_attendance_mapping("sabbatical", False, None) == (AttendanceStatus.LEAVE, "Leave")
