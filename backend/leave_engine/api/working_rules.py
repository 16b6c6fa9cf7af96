# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leave_engine.api.deps import AdminDep, AuthDep
from leave_engine.db import SessionDep
from leave_engine.schemas.working_rule import (
    CreateWorkingRuleRequest,
    WorkingDayCheckResponse,
    WorkingRuleListResponse,
    WorkingRuleResponse,
)
from leave_engine.services import working_rule as working_rule_service

working_rules_router = APIRouter(
    prefix="/working-rules",
    tags=["working-rules"],
)


@working_rules_router.post("", response_model=WorkingRuleResponse, status_code=status.HTTP_201_CREATED)
async def create_working_rule(
    payload: CreateWorkingRuleRequest,
    session: SessionDep,
    auth: AdminDep,
) -> WorkingRuleResponse:
    """Create a working rule, closing the open-ended rule it supersedes (admin only)."""
    return await working_rule_service.create_working_rule(session, payload)


@working_rules_router.get("", response_model=WorkingRuleListResponse)
async def list_working_rules(
    session: SessionDep,
    auth: AuthDep,
) -> WorkingRuleListResponse:
    return await working_rule_service.list_working_rules(session)


@working_rules_router.get("/check", response_model=WorkingDayCheckResponse)
async def check_working_day(
    session: SessionDep,
    auth: AuthDep,
    on_date: date = Query(alias="date"),
) -> WorkingDayCheckResponse:
    """Classify a date against the rule in force for it."""
    return await working_rule_service.check_working_day(session, on_date)


@working_rules_router.get("/{rule_id}", response_model=WorkingRuleResponse)
async def get_working_rule(
    rule_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> WorkingRuleResponse:
    return await working_rule_service.get_working_rule(session, rule_id)


@working_rules_router.post("/{rule_id}/default", response_model=WorkingRuleResponse)
async def set_default_working_rule(
    rule_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> WorkingRuleResponse:
    """Designate the default rule (admin only)."""
    return await working_rule_service.set_default_working_rule(session, rule_id)


@working_rules_router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_working_rule(
    rule_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> None:
    """Delete a rule that is neither the default nor already in force (admin only)."""
    await working_rule_service.delete_working_rule(session, rule_id)
