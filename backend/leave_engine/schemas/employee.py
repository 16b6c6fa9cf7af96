# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class UpsertEmployeeRequest(BaseModel):
    """Request body for upserting an employee in the stub directory."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=255)
    department: str | None = Field(default=None, max_length=100)
    designation: str | None = Field(default=None, max_length=100)


class EmployeeResponse(BaseModel):
    """Response schema for an employee."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    department: str | None
    designation: str | None


class EmployeeListResponse(BaseModel):
    """List of employees."""

    items: list[EmployeeResponse]
    total: int
