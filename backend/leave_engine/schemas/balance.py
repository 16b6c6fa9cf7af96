# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leave_engine.models.enums import AdjustmentOperation, BalanceEntryType, BalanceSourceType, LeaveType
from leave_engine.schemas.common import DayAmount, Days

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """One (employee, leave type, year) balance row."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    year: int
    allocated: Days
    used: Days
    pending: Days
    remaining: Days
    carry_forward: Days
    version: int
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """Balances for an employee, ordered by year then leave type."""

    items: list[BalanceResponse]
    total: int


class BalanceValidationResponse(BaseModel):
    """Whether a balance can cover a request, with enough context to explain why not."""

    is_valid: bool
    available: Days
    requested: Days
    shortfall: Days
    reason: str


class BalanceEntryResponse(BaseModel):
    """A single ledger entry."""

    id: uuid.UUID
    balance_id: uuid.UUID
    entry_type: BalanceEntryType
    days: Days
    source_type: BalanceSourceType
    source_id: str
    note: str | None
    actor_id: uuid.UUID | None
    created_at: datetime


class BalanceEntryListResponse(BaseModel):
    items: list[BalanceEntryResponse]
    total: int


# ---------------------------------------------------------------------------
# Administrative payloads
# ---------------------------------------------------------------------------


class AllocationInput(BaseModel):
    """Allocation for one leave type. Omitting carry_forward keeps the stored value."""

    allocated: DayAmount
    carry_forward: DayAmount | None = None


class AssignBalancesRequest(BaseModel):
    """Upsert the allocation of one or more leave types for an employee and year."""

    employee_id: uuid.UUID
    year: int = Field(ge=2000, le=2100)
    allocations: dict[LeaveType, AllocationInput] = Field(min_length=1)


class BulkAssignDefaultsRequest(BaseModel):
    """Assign the configured default quotas to several employees at once."""

    employee_ids: list[uuid.UUID] = Field(min_length=1)
    year: int = Field(ge=2000, le=2100)


class AdjustBalanceRequest(BaseModel):
    """Manual correction of a balance row."""

    operation: AdjustmentOperation
    days: DayAmount
    reason: str = Field(min_length=1, max_length=1000)


class CarryForwardRequest(BaseModel):
    """Carry unused days of ``from_year`` into the next year, capped per leave type."""

    from_year: int = Field(ge=2000, le=2100)
    caps: dict[LeaveType, DayAmount] = Field(min_length=1)


class CarryForwardItem(BaseModel):
    employee_id: uuid.UUID
    leave_type: LeaveType
    carried_days: Days


class CarryForwardResponse(BaseModel):
    from_year: int
    to_year: int
    processed: int
    skipped: int
    items: list[CarryForwardItem]
