"""Leave balance ledger.

Every mutation of a ``(employee_id, leave_type, year)`` balance row goes
through :func:`run_serialized`, which holds an in-process lock per key, and
through :func:`_write_balance`, which takes the row lock and applies an
optimistic ``version`` check. ``remaining`` is never written directly: it is
always derived by :func:`recompute_remaining`.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_engine.config import get_settings
from leave_engine.exceptions import ConcurrencyConflictError, InsufficientBalanceError, NotFoundError
from leave_engine.models.balance import LeaveBalance
from leave_engine.models.balance_entry import LeaveBalanceEntry
from leave_engine.models.base import now_utc
from leave_engine.models.enums import AdjustmentOperation, BalanceEntryType, BalanceSourceType, LeaveType
from leave_engine.schemas.balance import (
    BalanceEntryListResponse,
    BalanceEntryResponse,
    BalanceListResponse,
    BalanceResponse,
    BalanceValidationResponse,
    CarryForwardItem,
    CarryForwardResponse,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_engine.schemas.auth import AuthContext
    from leave_engine.schemas.balance import (
        AdjustBalanceRequest,
        AssignBalancesRequest,
        BulkAssignDefaultsRequest,
        CarryForwardRequest,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")
BalanceKey = tuple[uuid.UUID, str, int]

ZERO = Decimal(0)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class _KeyedLocks:
    """One asyncio.Lock per balance key, released to the GC when unused."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[BalanceKey, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: BalanceKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, keys: Iterable[BalanceKey]) -> AsyncIterator[None]:
        # Sorted acquisition so two multi-key operations cannot deadlock.
        ordered = sorted(set(keys), key=lambda k: (str(k[0]), k[1], k[2]))
        locks = [self._lock_for(key) for key in ordered]
        async with AsyncExitStack() as stack:
            for lock in locks:
                await stack.enter_async_context(lock)
            yield


_locks = _KeyedLocks()


def balance_key(employee_id: uuid.UUID, leave_type: str, year: int) -> BalanceKey:
    return (employee_id, str(leave_type), year)


def employee_key(employee_id: uuid.UUID) -> BalanceKey:
    """Key covering every request of an employee, whatever its leave type or year."""
    return (employee_id, "", 0)


async def run_serialized(
    session: AsyncSession,
    keys: Iterable[BalanceKey],
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Run ``operation`` under the locks for ``keys`` and commit its work.

    Any failure rolls the transaction back. A lost optimistic-version race is
    retried up to ``ledger_max_retries`` times; the last
    :class:`ConcurrencyConflictError` propagates to the caller.
    """
    keys = list(keys)
    max_retries = get_settings().ledger_max_retries
    attempt = 0
    while True:
        async with _locks.hold(keys):
            try:
                result = await operation()
                await session.commit()
            except ConcurrencyConflictError:
                await session.rollback()
                attempt += 1
                if attempt > max_retries:
                    logger.error("Ledger write for %s still conflicting after %d retries", keys, max_retries)
                    raise
                logger.warning("Ledger write conflict for %s, retrying (%d/%d)", keys, attempt, max_retries)
                continue
            except Exception:
                await session.rollback()
                raise
            return result


# ---------------------------------------------------------------------------
# Balance arithmetic
# ---------------------------------------------------------------------------


def _clamp(value: Decimal, field: str, key: BalanceKey) -> Decimal:
    if value < ZERO:
        logger.warning("Leave balance %s for %s would be %s; clamped to 0", field, key, value)
        return ZERO
    return value


def recompute_remaining(
    allocated: Decimal,
    carry_forward: Decimal,
    used: Decimal,
    pending: Decimal,
    key: BalanceKey,
) -> Decimal:
    """remaining = allocated + carry_forward - used - pending, never below zero."""
    return _clamp(allocated + carry_forward - used - pending, "remaining", key)


def _key_of(balance: LeaveBalance) -> BalanceKey:
    return balance_key(balance.employee_id, balance.leave_type, balance.year)


def apply_adjustment(
    balance: LeaveBalance,
    operation: AdjustmentOperation,
    days: Decimal,
) -> tuple[Decimal, Decimal]:
    """Return the (allocated, used) pair after applying ``operation``."""
    key = _key_of(balance)
    allocated, used = balance.allocated, balance.used
    if operation == AdjustmentOperation.ADD_ALLOCATED:
        allocated += days
    elif operation == AdjustmentOperation.SUBTRACT_ALLOCATED:
        allocated = _clamp(allocated - days, "allocated", key)
    elif operation == AdjustmentOperation.SET_ALLOCATED:
        allocated = days
    elif operation == AdjustmentOperation.ADD_USED:
        used += days
    elif operation == AdjustmentOperation.SUBTRACT_USED:
        used = _clamp(used - days, "used", key)
    elif operation == AdjustmentOperation.SET_USED:
        used = days
    return allocated, used


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_balance_response(balance: LeaveBalance) -> BalanceResponse:
    return BalanceResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        leave_type=LeaveType(balance.leave_type),
        year=balance.year,
        allocated=balance.allocated,
        used=balance.used,
        pending=balance.pending,
        remaining=balance.remaining,
        carry_forward=balance.carry_forward,
        version=balance.version,
        updated_at=balance.updated_at,
    )


def _build_entry_response(entry: LeaveBalanceEntry) -> BalanceEntryResponse:
    return BalanceEntryResponse(
        id=entry.id,
        balance_id=entry.balance_id,
        entry_type=BalanceEntryType(entry.entry_type),
        days=entry.days,
        source_type=BalanceSourceType(entry.source_type),
        source_id=entry.source_id,
        note=entry.note,
        actor_id=entry.actor_id,
        created_at=entry.created_at,
    )


async def _get_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    year: int,
    *,
    for_update: bool = False,
) -> LeaveBalance | None:
    query = select(LeaveBalance).where(
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.leave_type) == str(leave_type),
        col(LeaveBalance.year) == year,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def _get_balance_by_id(
    session: AsyncSession,
    balance_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveBalance:
    query = select(LeaveBalance).where(col(LeaveBalance.id) == balance_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError("Leave balance", balance_id)
    return balance


async def _require_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    year: int,
) -> LeaveBalance:
    balance = await _get_balance(session, employee_id, leave_type, year, for_update=True)
    if balance is None:
        raise NotFoundError("Leave balance", f"{employee_id}/{leave_type}/{year}")
    return balance


async def _write_balance(
    session: AsyncSession,
    balance: LeaveBalance,
    *,
    allocated: Decimal | None = None,
    used: Decimal | None = None,
    pending: Decimal | None = None,
    carry_forward: Decimal | None = None,
) -> LeaveBalance:
    """Persist new figures for ``balance`` if nobody else has written it since it was read."""
    key = _key_of(balance)
    allocated = balance.allocated if allocated is None else _clamp(allocated, "allocated", key)
    used = balance.used if used is None else _clamp(used, "used", key)
    pending = balance.pending if pending is None else _clamp(pending, "pending", key)
    carry_forward = balance.carry_forward if carry_forward is None else _clamp(carry_forward, "carry_forward", key)
    remaining = recompute_remaining(allocated, carry_forward, used, pending, key)

    result = await session.execute(
        update(LeaveBalance)
        .where(col(LeaveBalance.id) == balance.id, col(LeaveBalance.version) == balance.version)
        .values(
            allocated=allocated,
            used=used,
            pending=pending,
            carry_forward=carry_forward,
            remaining=remaining,
            version=balance.version + 1,
            updated_at=now_utc(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:  # type: ignore[attr-defined]
        raise ConcurrencyConflictError(
            "Leave balance was modified concurrently",
            employee_id=str(balance.employee_id),
            leave_type=balance.leave_type,
            year=balance.year,
            version=balance.version,
        )

    await session.refresh(balance)
    return balance


def _record_entry(
    session: AsyncSession,
    balance: LeaveBalance,
    entry_type: BalanceEntryType,
    days: Decimal,
    source_type: BalanceSourceType,
    source_id: str | None = None,
    note: str | None = None,
    actor_id: uuid.UUID | None = None,
) -> LeaveBalanceEntry:
    entry = LeaveBalanceEntry(
        balance_id=balance.id,
        employee_id=balance.employee_id,
        leave_type=balance.leave_type,
        year=balance.year,
        entry_type=entry_type.value,
        days=days,
        source_type=source_type.value,
        source_id=source_id or str(uuid.uuid4()),
        note=note,
        actor_id=actor_id,
    )
    session.add(entry)
    return entry


async def _create_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    year: int,
    allocated: Decimal,
    carry_forward: Decimal,
) -> LeaveBalance:
    key = balance_key(employee_id, leave_type, year)
    balance = LeaveBalance(
        employee_id=employee_id,
        leave_type=str(leave_type),
        year=year,
        allocated=allocated,
        carry_forward=carry_forward,
        remaining=recompute_remaining(allocated, carry_forward, ZERO, ZERO, key),
    )
    session.add(balance)
    try:
        await session.flush()
    except IntegrityError:
        # Another process created the row first.
        raise ConcurrencyConflictError(
            "Leave balance was created concurrently",
            employee_id=str(employee_id),
            leave_type=str(leave_type),
            year=year,
        ) from None
    return balance


# ---------------------------------------------------------------------------
# Request-driven operations (called inside run_serialized)
# ---------------------------------------------------------------------------


async def validate_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    requested_days: Decimal,
    year: int,
) -> BalanceValidationResponse:
    """Check whether the balance can cover ``requested_days``. Never mutates."""
    balance = await _get_balance(session, employee_id, leave_type, year)
    if balance is None:
        return BalanceValidationResponse(
            is_valid=False,
            available=ZERO,
            requested=requested_days,
            shortfall=requested_days,
            reason=f"No {leave_type} leave balance assigned for {year}",
        )

    available = balance.remaining
    if available < requested_days:
        return BalanceValidationResponse(
            is_valid=False,
            available=available,
            requested=requested_days,
            shortfall=requested_days - available,
            reason=f"Insufficient balance. Available: {available}, Requested: {requested_days}",
        )

    return BalanceValidationResponse(
        is_valid=True,
        available=available,
        requested=requested_days,
        shortfall=ZERO,
        reason="Sufficient balance",
    )


async def reserve_days(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    days: Decimal,
    year: int,
    *,
    source_id: str,
) -> LeaveBalance:
    """Move ``days`` from remaining into pending for a newly submitted request."""
    balance = await _require_balance(session, employee_id, leave_type, year)
    if balance.remaining < days:
        raise InsufficientBalanceError(
            f"Insufficient balance. Available: {balance.remaining}, Requested: {days}",
            available=float(balance.remaining),
            requested=float(days),
            shortfall=float(days - balance.remaining),
        )

    _record_entry(session, balance, BalanceEntryType.RESERVE, days, BalanceSourceType.REQUEST, source_id)
    return await _write_balance(session, balance, pending=balance.pending + days)


async def commit_days(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    days: Decimal,
    year: int,
    *,
    source_id: str,
) -> LeaveBalance:
    """Convert pending days into used days for an approved request."""
    balance = await _require_balance(session, employee_id, leave_type, year)
    _record_entry(session, balance, BalanceEntryType.COMMIT, days, BalanceSourceType.REQUEST, source_id)
    return await _write_balance(session, balance, pending=balance.pending - days, used=balance.used + days)


async def release_days(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type: str,
    days: Decimal,
    year: int,
    *,
    source_id: str,
) -> LeaveBalance:
    """Return pending days to remaining for a rejected or cancelled request."""
    balance = await _require_balance(session, employee_id, leave_type, year)
    _record_entry(session, balance, BalanceEntryType.RELEASE, days, BalanceSourceType.REQUEST, source_id)
    return await _write_balance(session, balance, pending=balance.pending - days)


# ---------------------------------------------------------------------------
# Administrative operations
# ---------------------------------------------------------------------------


async def adjust_balance(
    session: AsyncSession,
    auth: AuthContext,
    balance_id: uuid.UUID,
    payload: AdjustBalanceRequest,
) -> BalanceResponse:
    """Apply a manual correction. Refused when it would leave remaining negative."""
    balance = await _get_balance_by_id(session, balance_id)

    async def _adjust() -> LeaveBalance:
        current = await _get_balance_by_id(session, balance_id, for_update=True)
        allocated, used = apply_adjustment(current, payload.operation, payload.days)
        projected = allocated + current.carry_forward - used - current.pending
        if projected < ZERO:
            raise InsufficientBalanceError(
                "Adjustment would leave a negative remaining balance",
                available=float(current.remaining),
                requested=float(payload.days),
                shortfall=float(-projected),
            )
        _record_entry(
            session,
            current,
            BalanceEntryType.ADJUST,
            payload.days,
            BalanceSourceType.ADMIN,
            note=f"{payload.operation.value}: {payload.reason}",
            actor_id=auth.user_id,
        )
        return await _write_balance(session, current, allocated=allocated, used=used)

    balance = await run_serialized(session, [_key_of(balance)], _adjust)
    logger.info(
        "Balance %s adjusted by %s (%s %s)", balance_id, auth.user_id, payload.operation.value, payload.days
    )
    return _build_balance_response(balance)


async def assign_balances(
    session: AsyncSession,
    auth: AuthContext,
    payload: AssignBalancesRequest,
) -> BalanceListResponse:
    """Upsert allocations for an employee and year.

    Existing used and pending figures are kept; an allocation too small to
    cover them is refused.
    """
    keys = [balance_key(payload.employee_id, lt.value, payload.year) for lt in payload.allocations]

    async def _assign() -> list[LeaveBalance]:
        balances: list[LeaveBalance] = []
        for leave_type, allocation in payload.allocations.items():
            existing = await _get_balance(session, payload.employee_id, leave_type.value, payload.year, for_update=True)
            if existing is None:
                balance = await _create_balance(
                    session,
                    payload.employee_id,
                    leave_type.value,
                    payload.year,
                    allocation.allocated,
                    allocation.carry_forward or ZERO,
                )
                _record_entry(
                    session, balance, BalanceEntryType.ASSIGN, allocation.allocated, BalanceSourceType.ADMIN,
                    actor_id=auth.user_id,
                )
                balances.append(balance)
                continue

            carry_forward = existing.carry_forward if allocation.carry_forward is None else allocation.carry_forward
            if allocation.allocated + carry_forward < existing.used + existing.pending:
                raise InsufficientBalanceError(
                    f"Allocation for {leave_type.value} is below the days already used or pending",
                    allocated=float(allocation.allocated),
                    used=float(existing.used),
                    pending=float(existing.pending),
                )
            _record_entry(
                session, existing, BalanceEntryType.ASSIGN, allocation.allocated, BalanceSourceType.ADMIN,
                note=f"reassigned from {existing.allocated}", actor_id=auth.user_id,
            )
            balances.append(
                await _write_balance(session, existing, allocated=allocation.allocated, carry_forward=carry_forward)
            )
        return balances

    balances = await run_serialized(session, keys, _assign)
    logger.info(
        "Assigned %d leave balance(s) for employee %s in %d", len(balances), payload.employee_id, payload.year
    )
    return BalanceListResponse(items=[_build_balance_response(b) for b in balances], total=len(balances))


async def bulk_assign_defaults(
    session: AsyncSession,
    auth: AuthContext,
    payload: BulkAssignDefaultsRequest,
) -> BalanceListResponse:
    """Create the configured default quotas for each employee that lacks them.

    Rows that already exist are left untouched.
    """
    quotas = {LeaveType(lt): Decimal(str(days)) for lt, days in get_settings().default_leave_quotas.items()}
    created: list[LeaveBalance] = []

    for employee_id in dict.fromkeys(payload.employee_ids):
        keys = [balance_key(employee_id, lt.value, payload.year) for lt in quotas]

        async def _assign_defaults(employee_id: uuid.UUID = employee_id) -> list[LeaveBalance]:
            rows: list[LeaveBalance] = []
            for leave_type, days in quotas.items():
                if await _get_balance(session, employee_id, leave_type.value, payload.year) is not None:
                    continue
                balance = await _create_balance(session, employee_id, leave_type.value, payload.year, days, ZERO)
                _record_entry(
                    session, balance, BalanceEntryType.ASSIGN, days, BalanceSourceType.SYSTEM,
                    note="default quota", actor_id=auth.user_id,
                )
                rows.append(balance)
            return rows

        created.extend(await run_serialized(session, keys, _assign_defaults))

    logger.info(
        "Bulk default assignment for %d employee(s) in %d created %d balance(s)",
        len(payload.employee_ids),
        payload.year,
        len(created),
    )
    return BalanceListResponse(items=[_build_balance_response(b) for b in created], total=len(created))


async def carry_forward_balances(
    session: AsyncSession,
    auth: AuthContext,
    payload: CarryForwardRequest,
) -> CarryForwardResponse:
    """Carry unused days of ``from_year`` into the following year, capped per leave type.

    The next year's carry_forward is set, not added to, so running the job
    twice gives the same result. A re-run never lowers it below what the
    target's used and pending days already consume.
    """
    to_year = payload.from_year + 1
    caps = {lt.value: cap for lt, cap in payload.caps.items()}

    result = await session.execute(
        select(LeaveBalance)
        .where(col(LeaveBalance.year) == payload.from_year, col(LeaveBalance.leave_type).in_(list(caps)))
        .order_by(col(LeaveBalance.employee_id), col(LeaveBalance.leave_type))
    )
    sources = [(b.id, b.employee_id, b.leave_type) for b in result.scalars().all()]

    items: list[CarryForwardItem] = []
    skipped = 0
    for source_id, employee_id, leave_type in sources:
        cap = caps[leave_type]
        keys = [balance_key(employee_id, leave_type, payload.from_year), balance_key(employee_id, leave_type, to_year)]

        async def _carry(
            source_id: uuid.UUID = source_id,
            employee_id: uuid.UUID = employee_id,
            leave_type: str = leave_type,
            cap: Decimal = cap,
        ) -> Decimal | None:
            source = await _get_balance_by_id(session, source_id, for_update=True)
            carried = min(source.remaining, cap)
            target = await _get_balance(session, employee_id, leave_type, to_year, for_update=True)
            if target is None:
                if carried <= ZERO:
                    return None
                target = await _create_balance(session, employee_id, leave_type, to_year, ZERO, carried)
            else:
                # The target's used and pending days must stay covered.
                floor = target.used + target.pending - target.allocated
                if carried < floor:
                    logger.warning(
                        "Carry-forward into %s kept at %s to cover used and pending days (source offers %s)",
                        _key_of(target),
                        floor,
                        carried,
                    )
                    carried = floor
                target = await _write_balance(session, target, carry_forward=carried)
            _record_entry(
                session, target, BalanceEntryType.CARRY_FORWARD, carried, BalanceSourceType.SYSTEM,
                source_id=f"{source.id}:{uuid.uuid4()}", note=f"from {payload.from_year} (cap {cap})",
                actor_id=auth.user_id,
            )
            return carried

        carried = await run_serialized(session, keys, _carry)
        if carried is None:
            skipped += 1
            continue
        items.append(CarryForwardItem(employee_id=employee_id, leave_type=LeaveType(leave_type), carried_days=carried))

    logger.info(
        "Carry-forward %d -> %d: processed=%d skipped=%d", payload.from_year, to_year, len(items), skipped
    )
    return CarryForwardResponse(
        from_year=payload.from_year, to_year=to_year, processed=len(items), skipped=skipped, items=items
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(session: AsyncSession, balance_id: uuid.UUID) -> BalanceResponse:
    return _build_balance_response(await _get_balance_by_id(session, balance_id))


async def get_employee_balances(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
) -> BalanceListResponse:
    """All balances of an employee for one year, ordered by leave type."""
    result = await session.execute(
        select(LeaveBalance)
        .where(col(LeaveBalance.employee_id) == employee_id, col(LeaveBalance.year) == year)
        .order_by(col(LeaveBalance.leave_type))
    )
    balances = list(result.scalars().all())
    return BalanceListResponse(items=[_build_balance_response(b) for b in balances], total=len(balances))


async def get_balance_history(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start_year: int | None = None,
    end_year: int | None = None,
) -> BalanceListResponse:
    """Balances of an employee across years, newest year first."""
    query = select(LeaveBalance).where(col(LeaveBalance.employee_id) == employee_id)
    if start_year is not None:
        query = query.where(col(LeaveBalance.year) >= start_year)
    if end_year is not None:
        query = query.where(col(LeaveBalance.year) <= end_year)

    result = await session.execute(query.order_by(col(LeaveBalance.year).desc(), col(LeaveBalance.leave_type)))
    balances = list(result.scalars().all())
    return BalanceListResponse(items=[_build_balance_response(b) for b in balances], total=len(balances))


async def get_balance_entries(
    session: AsyncSession,
    balance_id: uuid.UUID,
    offset: int = 0,
    limit: int = 50,
) -> BalanceEntryListResponse:
    """Entry log of one balance row, newest first."""
    await _get_balance_by_id(session, balance_id)
    base_filter = [col(LeaveBalanceEntry.balance_id) == balance_id]

    count_result = await session.execute(select(func.count()).select_from(LeaveBalanceEntry).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveBalanceEntry)
        .where(*base_filter)
        .order_by(col(LeaveBalanceEntry.created_at).desc(), col(LeaveBalanceEntry.id))
        .offset(offset)
        .limit(limit)
    )
    entries = list(result.scalars().all())
    return BalanceEntryListResponse(items=[_build_entry_response(e) for e in entries], total=total)
