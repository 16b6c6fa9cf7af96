# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator


class CreateWorkingRuleRequest(BaseModel):
    """Request body for creating a working rule. Weekdays are 0 = Sunday ... 6 = Saturday.

    Every weekday must be either worked or weekend. When ``weekend_days`` is
    omitted it is every weekday not listed in ``working_days``.
    """

    rule_name: str = Field(min_length=1, max_length=255)
    working_days: list[int] = Field(min_length=1)
    weekend_days: list[int] | None = None
    effective_from: date
    effective_to: date | None = None
    is_default: bool = False

    @field_validator("working_days", "weekend_days")
    @classmethod
    def _validate_weekdays(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        if any(day < 0 or day > 6 for day in value):
            msg = "weekday indices must be between 0 (Sunday) and 6 (Saturday)"
            raise ValueError(msg)
        return sorted(set(value))

    @model_validator(mode="after")
    def _validate_rule(self) -> Self:
        if self.weekend_days is None:
            self.weekend_days = [day for day in range(7) if day not in self.working_days]
        if set(self.working_days) & set(self.weekend_days):
            msg = "a weekday cannot be both a working day and a weekend day"
            raise ValueError(msg)
        if set(self.working_days) | set(self.weekend_days) != set(range(7)):
            msg = "every weekday must be either a working day or a weekend day"
            raise ValueError(msg)
        if self.effective_to is not None and self.effective_to < self.effective_from:
            msg = "effective_to must not be before effective_from"
            raise ValueError(msg)
        return self


class WorkingRuleResponse(BaseModel):
    """Response schema for a working rule. ``id`` is None for the built-in fallback rule."""

    id: uuid.UUID | None
    rule_name: str
    working_days: list[int]
    weekend_days: list[int]
    effective_from: date
    effective_to: date | None
    is_default: bool
    is_active: bool
    created_at: datetime | None


class WorkingRuleListResponse(BaseModel):
    items: list[WorkingRuleResponse]
    total: int


class WorkingDayCheckResponse(BaseModel):
    """Classification of a single date against the working rule in force."""

    date: date
    day_of_week: int
    is_working_day: bool
    is_weekend: bool
    active_rule: WorkingRuleResponse
