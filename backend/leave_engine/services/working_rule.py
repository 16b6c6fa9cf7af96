"""Working-rule resolution and administration.

A date is classified against the rule whose window contains it. When no
window matches, the most recently expired rule still applies, so dates in
the past keep the classification they had when they happened. After that
comes the designated default rule, and finally a built-in Monday-Friday week.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlmodel import col

from leave_engine.exceptions import AppError, NotFoundError, ValidationFailedError
from leave_engine.models.working_rule import WorkingRule
from leave_engine.schemas.working_rule import (
    WorkingDayCheckResponse,
    WorkingRuleListResponse,
    WorkingRuleResponse,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.working_rule import CreateWorkingRuleRequest

logger = logging.getLogger(__name__)

FALLBACK_WORKING_DAYS = (1, 2, 3, 4, 5)
FALLBACK_WEEKEND_DAYS = (0, 6)


def day_of_week(on_date: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday."""
    return (on_date.weekday() + 1) % 7


def fallback_rule() -> WorkingRule:
    """Built-in Monday-Friday rule used when no rule is configured. Never persisted."""
    return WorkingRule(
        id=None,
        rule_name="Standard Monday-Friday",
        working_days=list(FALLBACK_WORKING_DAYS),
        weekend_days=list(FALLBACK_WEEKEND_DAYS),
        effective_from=date.min,
        effective_to=None,
        is_default=False,
        is_active=True,
        created_at=None,
    )


def _created_key(rule: WorkingRule) -> datetime:
    # Naive UTC: SQLite hands timestamps back without tzinfo.
    if rule.created_at is None:
        return datetime.min
    if rule.created_at.tzinfo is None:
        return rule.created_at
    return rule.created_at.astimezone(UTC).replace(tzinfo=None)


def select_active_rule(rules: Iterable[WorkingRule], on_date: date) -> WorkingRule:
    """Pick the rule governing ``on_date`` from a set of configured rules."""
    candidates = [r for r in rules if r.is_active]

    current = [
        r for r in candidates if r.effective_from <= on_date and (r.effective_to is None or r.effective_to >= on_date)
    ]
    if current:
        return max(current, key=lambda r: (r.effective_from, _created_key(r)))

    expired = [
        r for r in candidates if r.effective_from <= on_date and r.effective_to is not None and r.effective_to < on_date
    ]
    if expired:
        return max(expired, key=lambda r: r.effective_to or date.min)

    defaults = [r for r in candidates if r.is_default]
    if defaults:
        return max(defaults, key=lambda r: r.effective_from)

    return fallback_rule()


class DateRuleResolver:
    """Classifies dates as working or weekend days against a preloaded rule set."""

    def __init__(self, rules: Sequence[WorkingRule]) -> None:
        self._rules = list(rules)

    @classmethod
    async def load(cls, session: AsyncSession) -> DateRuleResolver:
        result = await session.execute(select(WorkingRule).where(col(WorkingRule.is_active).is_(True)))
        return cls(list(result.scalars().all()))

    def active_rule(self, on_date: date) -> WorkingRule:
        return select_active_rule(self._rules, on_date)

    def is_working_day(self, on_date: date) -> bool:
        return day_of_week(on_date) in self.active_rule(on_date).working_days

    def is_weekend(self, on_date: date) -> bool:
        return day_of_week(on_date) in self.active_rule(on_date).weekend_days


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


def _build_rule_response(rule: WorkingRule) -> WorkingRuleResponse:
    return WorkingRuleResponse(
        id=rule.id,
        rule_name=rule.rule_name,
        working_days=sorted(rule.working_days),
        weekend_days=sorted(rule.weekend_days),
        effective_from=rule.effective_from,
        effective_to=rule.effective_to,
        is_default=rule.is_default,
        is_active=rule.is_active,
        created_at=rule.created_at,
    )


async def _get_rule_or_404(session: AsyncSession, rule_id: uuid.UUID) -> WorkingRule:
    result = await session.execute(select(WorkingRule).where(col(WorkingRule.id) == rule_id))
    rule = result.scalar_one_or_none()
    if rule is None:
        raise NotFoundError("Working rule", rule_id)
    return rule


async def _clear_default(session: AsyncSession) -> None:
    await session.execute(
        update(WorkingRule).where(col(WorkingRule.is_default).is_(True)).values(is_default=False)
    )


async def create_working_rule(
    session: AsyncSession,
    payload: CreateWorkingRuleRequest,
    today: date | None = None,
) -> WorkingRuleResponse:
    """Create a rule, closing the open-ended rule it supersedes.

    The superseded rule keeps every other field, so dates inside its window
    resolve exactly as before. A superseded rule that would be left with an
    empty window is deactivated. Once any rule is configured, a new rule may
    not start before ``today``; only the first rule may be backdated.
    """
    today = today or date.today()
    if payload.effective_from < today:
        configured = await session.execute(
            select(col(WorkingRule.id)).where(col(WorkingRule.is_active).is_(True)).limit(1)
        )
        if configured.first() is not None:
            raise ValidationFailedError(
                "Cannot create a working rule that starts in the past",
                effective_from=payload.effective_from.isoformat(),
                today=today.isoformat(),
            )

    result = await session.execute(
        select(WorkingRule).where(
            col(WorkingRule.is_active).is_(True),
            col(WorkingRule.effective_to).is_(None),
            col(WorkingRule.effective_from) <= payload.effective_from,
        )
    )
    for superseded in result.scalars().all():
        superseded.effective_to = payload.effective_from - timedelta(days=1)
        if superseded.effective_to < superseded.effective_from:
            superseded.is_active = False
            superseded.is_default = False
            logger.info("Working rule %s replaced before taking effect, deactivated", superseded.id)
            continue
        logger.info(
            "Working rule %s superseded, effective_to set to %s", superseded.id, superseded.effective_to
        )

    if payload.is_default:
        await _clear_default(session)

    rule = WorkingRule(
        rule_name=payload.rule_name,
        working_days=payload.working_days,
        weekend_days=payload.weekend_days or [],
        effective_from=payload.effective_from,
        effective_to=payload.effective_to,
        is_default=payload.is_default,
    )
    session.add(rule)
    await session.commit()
    await session.refresh(rule)
    return _build_rule_response(rule)


async def list_working_rules(session: AsyncSession) -> WorkingRuleListResponse:
    """List rules with the default first, then newest window first."""
    result = await session.execute(
        select(WorkingRule).order_by(col(WorkingRule.is_default).desc(), col(WorkingRule.effective_from).desc())
    )
    rules = list(result.scalars().all())
    return WorkingRuleListResponse(items=[_build_rule_response(r) for r in rules], total=len(rules))


async def get_working_rule(session: AsyncSession, rule_id: uuid.UUID) -> WorkingRuleResponse:
    return _build_rule_response(await _get_rule_or_404(session, rule_id))


async def set_default_working_rule(session: AsyncSession, rule_id: uuid.UUID) -> WorkingRuleResponse:
    """Designate a rule as the default. Any previous default is unset."""
    rule = await _get_rule_or_404(session, rule_id)
    if not rule.is_active:
        raise AppError("Cannot set inactive working rule as default", status_code=400)

    await _clear_default(session)
    await session.refresh(rule)
    rule.is_default = True
    await session.commit()
    await session.refresh(rule)
    return _build_rule_response(rule)


async def delete_working_rule(session: AsyncSession, rule_id: uuid.UUID, today: date | None = None) -> None:
    """Delete a rule that is neither the default nor already in force."""
    today = today or date.today()
    rule = await _get_rule_or_404(session, rule_id)
    if rule.is_default:
        raise AppError("Cannot delete default working rule", status_code=400)
    if rule.effective_from <= today:
        raise AppError("Cannot delete a working rule that has already taken effect", status_code=400)

    await session.delete(rule)
    await session.commit()


async def check_working_day(session: AsyncSession, on_date: date) -> WorkingDayCheckResponse:
    """Classify a single date against the rule in force for it."""
    resolver = await DateRuleResolver.load(session)
    return WorkingDayCheckResponse(
        date=on_date,
        day_of_week=day_of_week(on_date),
        is_working_day=resolver.is_working_day(on_date),
        is_weekend=resolver.is_weekend(on_date),
        active_rule=_build_rule_response(resolver.active_rule(on_date)),
    )
