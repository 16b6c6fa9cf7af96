# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leave_engine.api.deps import AdminDep, AuthDep, ensure_self_or_admin
from leave_engine.db import SessionDep
from leave_engine.schemas.balance import (
    AdjustBalanceRequest,
    AssignBalancesRequest,
    BalanceEntryListResponse,
    BalanceListResponse,
    BalanceResponse,
    BulkAssignDefaultsRequest,
    CarryForwardRequest,
    CarryForwardResponse,
)
from leave_engine.services import ledger as ledger_service

employee_balance_router = APIRouter(
    prefix="/employees/{employee_id}/balances",
    tags=["balances"],
)

balance_admin_router = APIRouter(
    prefix="/balances",
    tags=["balances"],
)


@employee_balance_router.get("", response_model=BalanceListResponse)
async def get_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int = Query(ge=2000, le=2100),
) -> BalanceListResponse:
    """Get every leave-type balance of an employee for one year."""
    ensure_self_or_admin(auth, employee_id)
    return await ledger_service.get_employee_balances(session, employee_id, year)


@employee_balance_router.get("/history", response_model=BalanceListResponse)
async def get_balance_history(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    start_year: int | None = Query(default=None, ge=2000, le=2100),
    end_year: int | None = Query(default=None, ge=2000, le=2100),
) -> BalanceListResponse:
    """Get an employee's balances across years, newest first."""
    ensure_self_or_admin(auth, employee_id)
    return await ledger_service.get_balance_history(session, employee_id, start_year, end_year)


@balance_admin_router.get("/{balance_id}", response_model=BalanceResponse)
async def get_balance(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Get a single balance row (admin only)."""
    return await ledger_service.get_balance(session, balance_id)


@balance_admin_router.get("/{balance_id}/entries", response_model=BalanceEntryListResponse)
async def get_balance_entries(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> BalanceEntryListResponse:
    """Get the entry log of a balance row (admin only)."""
    return await ledger_service.get_balance_entries(session, balance_id, offset, limit)


@balance_admin_router.post("/assign", response_model=BalanceListResponse, status_code=status.HTTP_201_CREATED)
async def assign_balances(
    payload: AssignBalancesRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceListResponse:
    """Create or update an employee's allocations for a year (admin only)."""
    return await ledger_service.assign_balances(session, auth, payload)


@balance_admin_router.post(
    "/bulk-assign-defaults", response_model=BalanceListResponse, status_code=status.HTTP_201_CREATED
)
async def bulk_assign_defaults(
    payload: BulkAssignDefaultsRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceListResponse:
    """Assign the configured default quotas to several employees (admin only)."""
    return await ledger_service.bulk_assign_defaults(session, auth, payload)


@balance_admin_router.post("/{balance_id}/adjust", response_model=BalanceResponse)
async def adjust_balance(
    balance_id: uuid.UUID,
    payload: AdjustBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Apply a manual correction to a balance row (admin only)."""
    return await ledger_service.adjust_balance(session, auth, balance_id, payload)


@balance_admin_router.post("/carry-forward", response_model=CarryForwardResponse)
async def carry_forward(
    payload: CarryForwardRequest,
    session: SessionDep,
    auth: AdminDep,
) -> CarryForwardResponse:
    """Carry unused days into the next year, capped per leave type (admin only)."""
    return await ledger_service.carry_forward_balances(session, auth, payload)
