# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leave_engine.exceptions import ForbiddenError
from leave_engine.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="employee"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


def ensure_self_or_admin(auth: AuthContext, employee_id: uuid.UUID) -> None:
    """Employees may only read their own data; admins may read anyone's."""
    if not auth.is_admin and auth.user_id != employee_id:
        raise ForbiddenError("Not authorized to access another employee's data")
