from sqlmodel import SQLModel

from leave_engine.models.balance import LeaveBalance
from leave_engine.models.balance_entry import LeaveBalanceEntry
from leave_engine.models.base import TimestampMixin, UUIDBase
from leave_engine.models.enums import (
    AdjustmentOperation,
    AttendanceStatus,
    BalanceEntryType,
    BalanceSourceType,
    DayStatus,
    DayType,
    HalfDayPeriod,
    HolidayType,
    LeaveStatus,
    LeaveType,
)
from leave_engine.models.holiday import Holiday
from leave_engine.models.request import LeaveRequest
from leave_engine.models.working_rule import WorkingRule

__all__ = [
    "AdjustmentOperation",
    "AttendanceStatus",
    "BalanceEntryType",
    "BalanceSourceType",
    "DayStatus",
    "DayType",
    "HalfDayPeriod",
    "Holiday",
    "HolidayType",
    "LeaveBalance",
    "LeaveBalanceEntry",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "WorkingRule",
]
