from fastapi import APIRouter

from leave_engine.api.balances import balance_admin_router, employee_balance_router
from leave_engine.api.calendar import calendar_router
from leave_engine.api.employees import employees_router
from leave_engine.api.holidays import holidays_router
from leave_engine.api.reports import reports_router
from leave_engine.api.requests import requests_router
from leave_engine.api.working_rules import working_rules_router

api_router = APIRouter()
api_router.include_router(calendar_router)
api_router.include_router(working_rules_router)
api_router.include_router(holidays_router)
api_router.include_router(requests_router)
api_router.include_router(employee_balance_router)
api_router.include_router(balance_admin_router)
api_router.include_router(employees_router)
api_router.include_router(reports_router)
