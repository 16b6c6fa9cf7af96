# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Query

from leave_engine.api.deps import AdminDep
from leave_engine.db import SessionDep
from leave_engine.models.enums import LeaveType
from leave_engine.schemas.report import UtilizationReportResponse
from leave_engine.services import report as report_service

reports_router = APIRouter(
    prefix="/reports",
    tags=["reports"],
)


@reports_router.get(
    "/utilization",
    response_model=UtilizationReportResponse,
)
async def get_utilization_report(
    session: SessionDep,
    auth: AdminDep,
    year: int = Query(ge=2000, le=2100),
    leave_type: LeaveType | None = Query(default=None),
    department: str | None = Query(default=None),
) -> UtilizationReportResponse:
    """Leave utilization for a year, optionally narrowed to a leave type or department (admin only)."""
    return await report_service.get_utilization_report(session, year, leave_type, department)
