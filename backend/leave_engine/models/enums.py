from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Kinds of leave an employee can hold a balance for."""

    SICK = "sick"
    ANNUAL = "annual"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    EMERGENCY = "emergency"
    UNPAID = "unpaid"


class LeaveStatus(enum.StrEnum):
    """State machine for leave requests. Only PENDING has outgoing transitions."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class HalfDayPeriod(enum.StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class DayStatus(enum.StrEnum):
    """Resolved status of one date for one employee, highest priority first."""

    WEEKEND = "WEEKEND"
    HOLIDAY = "HOLIDAY"
    LEAVE = "LEAVE"
    WORKING_DAY = "WORKING_DAY"


class DayType(enum.StrEnum):
    WORKING = "working"
    NON_WORKING = "non_working"


class HolidayType(enum.StrEnum):
    """ONE_TIME holidays apply to their date only; RECURRING ones to the same month-day every year."""

    ONE_TIME = "ONE_TIME"
    RECURRING = "RECURRING"


class BalanceEntryType(enum.StrEnum):
    """Kind of operation recorded in the balance entry log."""

    ASSIGN = "ASSIGN"
    RESERVE = "RESERVE"
    COMMIT = "COMMIT"
    RELEASE = "RELEASE"
    ADJUST = "ADJUST"
    CARRY_FORWARD = "CARRY_FORWARD"


class BalanceSourceType(enum.StrEnum):
    """Origin of a balance entry."""

    REQUEST = "REQUEST"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class AdjustmentOperation(enum.StrEnum):
    """Manual corrections an administrator can apply to a balance row."""

    ADD_ALLOCATED = "add_allocated"
    SUBTRACT_ALLOCATED = "subtract_allocated"
    SET_ALLOCATED = "set_allocated"
    ADD_USED = "add_used"
    SUBTRACT_USED = "subtract_used"
    SET_USED = "set_used"


class AttendanceStatus(enum.StrEnum):
    """Attendance status stamped for approved leave."""

    LEAVE = "leave"
    HALF_DAY = "half_day"
