from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    context: dict[str, Any] | None = None


class AppError(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.context = context
        super().__init__(self.message)


class InvalidRangeError(AppError):
    """Start date falls after end date, or the range charges no days."""

    def __init__(self, message: str = "Start date cannot be after end date", **context: Any) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, context or None)


class OverlapError(AppError):
    """The candidate range intersects a pending or approved request."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, context or None)


class InsufficientBalanceError(AppError):
    """Remaining balance is lower than the requested number of days."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, context or None)


class NotFoundError(AppError):
    def __init__(self, entity: str, entity_id: Any = None) -> None:
        super().__init__(
            f"{entity} not found",
            status.HTTP_404_NOT_FOUND,
            {"entity": entity, "id": str(entity_id)} if entity_id is not None else {"entity": entity},
        )


class InvalidStateTransitionError(AppError):
    """A lifecycle action was attempted from a status that does not allow it."""

    def __init__(self, action: str, current_status: str) -> None:
        super().__init__(
            f"Cannot {action} leave request with status: {current_status}",
            status.HTTP_400_BAD_REQUEST,
            {"action": action, "current_status": current_status},
        )


class ConcurrencyConflictError(AppError):
    """A ledger write lost a race with a concurrent writer; the caller should retry."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, context or None)


class PartialFailureError(AppError):
    """The ledger committed but a dependent side effect did not complete."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, context or None)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class ValidationFailedError(AppError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, context or None)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            context=exc.context,
        ).model_dump(mode="json"),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(mode="json"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
