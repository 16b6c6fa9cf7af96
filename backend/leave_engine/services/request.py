# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from leave_engine.config import get_settings
from leave_engine.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidRangeError,
    InvalidStateTransitionError,
    NotFoundError,
    OverlapError,
    PartialFailureError,
    ValidationFailedError,
)
from leave_engine.models.base import now_utc
from leave_engine.models.enums import DayStatus, HalfDayPeriod, LeaveStatus, LeaveType
from leave_engine.models.request import LeaveRequest
from leave_engine.schemas.request import (
    LeaveApplicationValidationResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    OverlapCheckResponse,
)
from leave_engine.services.attendance import get_attendance_service, leave_attendance_mapping
from leave_engine.services.day_status import DayStatusResolver, iter_dates
from leave_engine.services.duration import calculate_leave_duration
from leave_engine.services.employee import get_employee_service
from leave_engine.services.ledger import (
    balance_key,
    commit_days,
    employee_key,
    release_days,
    reserve_days,
    run_serialized,
    validate_balance,
)
from leave_engine.services.overlap import find_overlapping_request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.calendar import LeaveDurationResponse
    from leave_engine.schemas.request import RejectPayload, SubmitLeavePayload

logger = logging.getLogger(__name__)

ATTENDANCE_SOURCE = "leave"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_type=LeaveType(request.leave_type),
        start_date=request.start_date,
        end_date=request.end_date,
        total_days=request.total_days,
        is_half_day=request.is_half_day,
        half_day_period=HalfDayPeriod(request.half_day_period) if request.half_day_period else None,
        reason=request.reason,
        status=LeaveStatus(request.status),
        reviewed_by=request.reviewed_by,
        reviewed_at=request.reviewed_at,
        rejection_reason=request.rejection_reason,
        cancelled_at=request.cancelled_at,
        created_at=request.created_at,
    )


async def _get_request_or_404(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Leave request", request_id)
    return request


async def _charge_for(
    session: AsyncSession,
    start_date: date,
    end_date: date,
    is_half_day: bool,
) -> LeaveDurationResponse:
    settings = get_settings()
    return await calculate_leave_duration(
        session,
        start_date,
        end_date,
        is_half_day=is_half_day,
        exclude_weekends=settings.exclude_weekends_from_leave,
        exclude_holidays=settings.exclude_holidays_from_leave,
    )


LedgerOperation = Callable[..., Awaitable[object]]


async def _transition(
    session: AsyncSession,
    request_id: uuid.UUID,
    action: str,
    ledger_operation: LedgerOperation,
    apply: Callable[[LeaveRequest], None],
) -> LeaveRequest:
    """Move a pending request to a terminal status together with its ledger operation.

    The status check runs under the balance lock, so a request can only leave
    pending once.
    """
    request = await _get_request_or_404(session, request_id)
    key = balance_key(request.employee_id, request.leave_type, request.start_date.year)

    async def _apply() -> LeaveRequest:
        current = await _get_request_or_404(session, request_id, for_update=True)
        if current.status != LeaveStatus.PENDING:
            raise InvalidStateTransitionError(action, current.status)
        await ledger_operation(
            session,
            current.employee_id,
            current.leave_type,
            current.total_days,
            current.start_date.year,
            source_id=str(current.id),
        )
        apply(current)
        await session.flush()
        return current

    return await run_serialized(session, [key], _apply)


async def _stamp_attendance(request: LeaveRequest) -> None:
    """Write attendance for every date of an approved request (the start date only for half days)."""
    service = get_attendance_service()
    status, reason = leave_attendance_mapping(request.leave_type, request.is_half_day, request.half_day_period)
    dates = [request.start_date] if request.is_half_day else list(iter_dates(request.start_date, request.end_date))

    failed: list[date] = []
    for on_date in dates:
        try:
            await service.upsert_attendance_record(
                request.employee_id, on_date, status.value, reason, source=ATTENDANCE_SOURCE
            )
        except Exception:
            logger.exception("Failed to stamp attendance for leave request %s on %s", request.id, on_date)
            failed.append(on_date)

    if failed:
        raise PartialFailureError(
            "Leave request approved but attendance could not be updated",
            request_id=str(request.id),
            failed_dates=[d.isoformat() for d in failed],
        )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def submit_leave(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeavePayload,
) -> LeaveRequestResponse:
    """Submit a leave request and reserve its days.

    Flow:
    1. Verify the employee exists
    2. Compute the charged days (working days under the configured exclusions)
    3. Under the employee and balance locks: overlap check, balance validation, reserve
    4. Persist the pending request and commit
    """
    if not auth.is_admin and auth.user_id != payload.employee_id:
        raise ForbiddenError("Employees can only submit leave for themselves")

    employee = await get_employee_service().get_employee(payload.employee_id)
    if employee is None:
        raise NotFoundError("Employee", payload.employee_id)

    start_date = payload.start_date
    end_date = payload.end_date or start_date
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())

    duration = await _charge_for(session, start_date, end_date, payload.is_half_day)
    days = duration.working_days
    if days <= 0:
        raise InvalidRangeError(
            "Leave request covers no working days", start_date=start_date.isoformat(), end_date=end_date.isoformat()
        )

    year = start_date.year
    request_id = uuid.uuid4()

    async def _submit() -> LeaveRequest:
        conflict = await find_overlapping_request(session, payload.employee_id, start_date, end_date)
        if conflict is not None:
            raise OverlapError(
                "Leave request overlaps with an existing pending or approved request",
                conflicting_request_id=str(conflict.id),
                conflicting_start_date=conflict.start_date.isoformat(),
                conflicting_end_date=conflict.end_date.isoformat(),
            )

        check = await validate_balance(session, payload.employee_id, payload.leave_type, days, year)
        if not check.is_valid:
            raise InsufficientBalanceError(
                check.reason,
                available=float(check.available),
                requested=float(check.requested),
                shortfall=float(check.shortfall),
            )

        await reserve_days(session, payload.employee_id, payload.leave_type, days, year, source_id=str(request_id))

        leave_request = LeaveRequest(
            id=request_id,
            employee_id=payload.employee_id,
            leave_type=payload.leave_type.value,
            start_date=start_date,
            end_date=end_date,
            total_days=days,
            is_half_day=payload.is_half_day,
            half_day_period=payload.half_day_period.value if payload.half_day_period else None,
            reason=payload.reason,
            status=LeaveStatus.PENDING.value,
        )
        session.add(leave_request)
        await session.flush()
        return leave_request

    leave_request = await run_serialized(
        session,
        [employee_key(payload.employee_id), balance_key(payload.employee_id, payload.leave_type, year)],
        _submit,
    )
    logger.info(
        "Leave request %s submitted by %s for employee %s: %s %s..%s (%s days)",
        leave_request.id,
        auth.user_id,
        payload.employee_id,
        payload.leave_type.value,
        start_date,
        end_date,
        days,
    )
    return _build_request_response(leave_request)


async def approve_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Approve a pending request: commit its days, then stamp attendance.

    The ledger commit is durable before attendance is touched; an attendance
    failure surfaces as PartialFailureError without undoing the approval.
    """

    def _approve(request: LeaveRequest) -> None:
        request.status = LeaveStatus.APPROVED.value
        request.reviewed_by = auth.user_id
        request.reviewed_at = now_utc()

    leave_request = await _transition(session, request_id, "approve", commit_days, _approve)
    logger.info("Leave request %s approved by %s", request_id, auth.user_id)

    await _stamp_attendance(leave_request)
    return _build_request_response(leave_request)


async def reject_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: RejectPayload,
) -> LeaveRequestResponse:
    """Reject a pending request and release its reserved days. Attendance is untouched."""
    reason = payload.reason.strip()
    if not reason:
        raise ValidationFailedError("Rejection reason is required")

    def _reject(request: LeaveRequest) -> None:
        request.status = LeaveStatus.REJECTED.value
        request.rejection_reason = reason
        request.reviewed_by = auth.user_id
        request.reviewed_at = now_utc()

    leave_request = await _transition(session, request_id, "reject", release_days, _reject)
    logger.info("Leave request %s rejected by %s", request_id, auth.user_id)
    return _build_request_response(leave_request)


async def cancel_leave(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Cancel a pending request and release its reserved days.

    Only the employee who owns the request can cancel it.
    """
    leave_request = await _get_request_or_404(session, request_id)
    if auth.user_id != leave_request.employee_id:
        raise ForbiddenError("Only the requesting employee can cancel a leave request")

    def _cancel(request: LeaveRequest) -> None:
        request.status = LeaveStatus.CANCELLED.value
        request.cancelled_at = now_utc()

    leave_request = await _transition(session, request_id, "cancel", release_days, _cancel)
    logger.info("Leave request %s cancelled by %s", request_id, auth.user_id)
    return _build_request_response(leave_request)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


async def check_overlap(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_request_id: uuid.UUID | None = None,
) -> OverlapCheckResponse:
    conflict = await find_overlapping_request(session, employee_id, start_date, end_date, exclude_request_id)
    return OverlapCheckResponse(
        has_overlap=conflict is not None,
        conflicting_request=_build_request_response(conflict) if conflict is not None else None,
    )


async def validate_leave_application(
    session: AsyncSession,
    payload: SubmitLeavePayload,
) -> LeaveApplicationValidationResponse:
    """Dry run of :func:`submit_leave`. Reports every problem instead of stopping at the first; writes nothing."""
    employee = await get_employee_service().get_employee(payload.employee_id)
    if employee is None:
        raise NotFoundError("Employee", payload.employee_id)

    start_date = payload.start_date
    end_date = payload.end_date or start_date
    if start_date > end_date:
        raise InvalidRangeError(start_date=start_date.isoformat(), end_date=end_date.isoformat())

    messages: list[str] = []
    duration = await _charge_for(session, start_date, end_date, payload.is_half_day)
    if duration.working_days <= 0:
        messages.append("Selected dates contain no working days")

    resolver = await DayStatusResolver.load(session, start_date, end_date)
    non_working = [
        s for s in resolver.resolve_range(start_date, end_date) if s.status in (DayStatus.WEEKEND, DayStatus.HOLIDAY)
    ]
    for day in non_working:
        messages.append(f"{day.date.isoformat()} is not charged: {day.reason}")

    conflict = await find_overlapping_request(session, payload.employee_id, start_date, end_date)
    if conflict is not None:
        messages.append(
            f"Overlaps with {conflict.status} leave request {conflict.id} "
            f"({conflict.start_date.isoformat()} to {conflict.end_date.isoformat()})"
        )

    balance = await validate_balance(
        session, payload.employee_id, payload.leave_type, duration.working_days, start_date.year
    )
    if not balance.is_valid:
        messages.append(balance.reason)

    return LeaveApplicationValidationResponse(
        is_valid=conflict is None and balance.is_valid and duration.working_days > 0,
        duration=duration,
        non_working_days=non_working,
        conflicting_request_id=conflict.id if conflict is not None else None,
        balance=balance,
        messages=messages,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequestResponse:
    """Get a single request by ID."""
    return _build_request_response(await _get_request_or_404(session, request_id))


async def list_requests(
    session: AsyncSession,
    status_filter: LeaveStatus | None = None,
    employee_id: uuid.UUID | None = None,
    leave_type: LeaveType | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """List requests with optional filters, ordered by created_at DESC.

    ``date_from``/``date_to`` keep requests that touch the window.
    """
    base_filters = []
    if status_filter is not None:
        base_filters.append(col(LeaveRequest.status) == status_filter.value)
    if employee_id is not None:
        base_filters.append(col(LeaveRequest.employee_id) == employee_id)
    if leave_type is not None:
        base_filters.append(col(LeaveRequest.leave_type) == leave_type.value)
    if date_from is not None:
        base_filters.append(col(LeaveRequest.end_date) >= date_from)
    if date_to is not None:
        base_filters.append(col(LeaveRequest.start_date) <= date_to)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    return LeaveRequestListResponse(
        items=[_build_request_response(r) for r in requests],
        total=total,
    )
