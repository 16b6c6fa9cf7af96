# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from leave_engine.api.deps import AdminDep, AuthDep
from leave_engine.exceptions import NotFoundError
from leave_engine.schemas.employee import EmployeeListResponse, EmployeeResponse, UpsertEmployeeRequest
from leave_engine.services.employee import EmployeeInfo, get_employee_service

employees_router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)


def _build_employee_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        department=employee.department,
        designation=employee.designation,
    )


@employees_router.put(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def upsert_employee(
    employee_id: uuid.UUID,
    payload: UpsertEmployeeRequest,
    auth: AdminDep,
) -> EmployeeResponse:
    """Create or update an employee in the stub directory (admin only)."""
    svc = get_employee_service()
    employee = EmployeeInfo(id=employee_id, **payload.model_dump())
    svc.seed(employee)  # ty: ignore[unresolved-attribute]
    return _build_employee_response(employee)


@employees_router.get(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def get_employee(
    employee_id: uuid.UUID,
    auth: AuthDep,
) -> EmployeeResponse:
    """Get employee info from the stub directory."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError("Employee", employee_id)
    return _build_employee_response(employee)


@employees_router.get(
    "",
    response_model=EmployeeListResponse,
)
async def list_employees(
    auth: AuthDep,
) -> EmployeeListResponse:
    """List all employees in the stub directory."""
    items = [_build_employee_response(e) for e in await get_employee_service().list_employees()]
    return EmployeeListResponse(items=items, total=len(items))
