# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_engine.models.enums import HalfDayPeriod, LeaveStatus, LeaveType
from leave_engine.schemas.balance import BalanceValidationResponse
from leave_engine.schemas.calendar import DayStatusResponse, LeaveDurationResponse
from leave_engine.schemas.common import Days

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a leave request.

    Half-day requests are tied to a single date: ``end_date`` defaults to
    ``start_date`` and must equal it.
    """

    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date | None = None
    is_half_day: bool = False
    half_day_period: HalfDayPeriod | None = None
    reason: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _validate_half_day(self) -> Self:
        if self.end_date is None:
            self.end_date = self.start_date
        if self.is_half_day:
            if self.half_day_period is None:
                msg = "half_day_period is required for half-day leave"
                raise ValueError(msg)
            if self.end_date != self.start_date:
                msg = "half-day leave must start and end on the same date"
                raise ValueError(msg)
        else:
            self.half_day_period = None
        return self


class RejectPayload(BaseModel):
    """Request body for rejecting a request. The reason is checked for blank text by the service."""

    reason: str = Field(max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: Days
    is_half_day: bool
    half_day_period: HalfDayPeriod | None
    reason: str | None
    status: LeaveStatus
    reviewed_by: uuid.UUID | None
    reviewed_at: datetime | None
    rejection_reason: str | None
    cancelled_at: datetime | None
    created_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class OverlapCheckResponse(BaseModel):
    has_overlap: bool
    conflicting_request: LeaveRequestResponse | None = None


class LeaveApplicationValidationResponse(BaseModel):
    """Dry-run result for a prospective leave application. Nothing is persisted."""

    is_valid: bool
    duration: LeaveDurationResponse | None
    non_working_days: list[DayStatusResponse]
    conflicting_request_id: uuid.UUID | None
    balance: BalanceValidationResponse | None
    messages: list[str]
