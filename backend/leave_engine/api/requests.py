# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leave_engine.api.deps import AdminDep, AuthDep, ensure_self_or_admin
from leave_engine.db import SessionDep
from leave_engine.models.enums import LeaveStatus, LeaveType
from leave_engine.schemas.request import (
    LeaveApplicationValidationResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    OverlapCheckResponse,
    RejectPayload,
    SubmitLeavePayload,
)
from leave_engine.services import request as request_service

requests_router = APIRouter(
    prefix="/leave-requests",
    tags=["leave-requests"],
)


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a new leave request."""
    return await request_service.submit_leave(session, auth, payload)


@requests_router.post("/validate", response_model=LeaveApplicationValidationResponse)
async def validate_leave_application(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveApplicationValidationResponse:
    """Dry-run a leave application without reserving anything."""
    ensure_self_or_admin(auth, payload.employee_id)
    return await request_service.validate_leave_application(session, payload)


@requests_router.get("/overlap", response_model=OverlapCheckResponse)
async def check_overlap(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID = Query(),
    start_date: date = Query(),
    end_date: date = Query(),
    exclude_request_id: uuid.UUID | None = Query(default=None),
) -> OverlapCheckResponse:
    """Check whether a date range collides with a pending or approved request."""
    ensure_self_or_admin(auth, employee_id)
    return await request_service.check_overlap(session, employee_id, start_date, end_date, exclude_request_id)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    leave_type: LeaveType | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters. Employees only see their own."""
    if not auth.is_admin:
        employee_id = auth.user_id
    return await request_service.list_requests(
        session, status_filter, employee_id, leave_type, date_from, date_to, offset, limit
    )


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    leave_request = await request_service.get_request(session, request_id)
    ensure_self_or_admin(auth, leave_request.employee_id)
    return leave_request


@requests_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveRequestResponse:
    """Approve a pending leave request (admin only)."""
    return await request_service.approve_leave(session, auth, request_id)


@requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave(
    request_id: uuid.UUID,
    payload: RejectPayload,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveRequestResponse:
    """Reject a pending leave request with a reason (admin only)."""
    return await request_service.reject_leave(session, auth, request_id, payload)


@requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one's own pending leave request."""
    return await request_service.cancel_leave(session, auth, request_id)
