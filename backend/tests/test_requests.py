"""Tests for the leave request lifecycle: submit, approve, reject, cancel, validation and listing."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

import pytest

from leave_engine.services.attendance import AttendanceRecord, set_attendance_service
from leave_engine.services.employee import EmployeeInfo, InMemoryEmployeeService, set_employee_service

if TYPE_CHECKING:
    from collections.abc import Iterator

    from httpx import AsyncClient

    from leave_engine.services.attendance import InMemoryAttendanceService

ADMIN_ID = uuid.uuid4()
EMPLOYEE_ID = uuid.uuid4()
OTHER_EMPLOYEE_ID = uuid.uuid4()

AUTH_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}
OTHER_HEADERS = {"X-User-Id": str(OTHER_EMPLOYEE_ID), "X-Role": "employee"}
REQUESTS_URL = "/leave-requests"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _seed_employee_service() -> Iterator[None]:
    """Seed the in-memory employee service for every test."""
    svc = InMemoryEmployeeService()
    svc.seed(EmployeeInfo(id=EMPLOYEE_ID, first_name="Test", last_name="Employee", email="test@example.com"))
    svc.seed(EmployeeInfo(id=OTHER_EMPLOYEE_ID, first_name="Other", last_name="Employee", email="other@example.com"))
    set_employee_service(svc)
    yield
    set_employee_service(InMemoryEmployeeService())


class _FailingAttendanceService:
    """Attendance store that refuses writes for selected dates."""

    def __init__(self, failing: set[date]) -> None:
        self.failing = failing
        self.written: list[date] = []

    async def upsert_attendance_record(
        self,
        employee_id: uuid.UUID,
        on_date: date,
        status: str,
        reason: str,
        source: str = "system",
    ) -> AttendanceRecord:
        if on_date in self.failing:
            msg = f"attendance store unavailable for {on_date}"
            raise ConnectionError(msg)
        self.written.append(on_date)
        return AttendanceRecord(employee_id=employee_id, date=on_date, status=status, status_reason=reason, source=source)


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _assign_balance(
    client: AsyncClient,
    leave_type: str = "sick",
    allocated: float = 10,
    used: float = 0,
    employee_id: uuid.UUID = EMPLOYEE_ID,
    year: int = 2025,
) -> str:
    """Assign a balance, optionally pre-charging used days, and return its ID."""
    resp = await client.post(
        "/balances/assign",
        json={"employee_id": str(employee_id), "year": year, "allocations": {leave_type: {"allocated": allocated}}},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201
    balance_id: str = resp.json()["items"][0]["id"]
    if used:
        resp = await client.post(
            f"/balances/{balance_id}/adjust",
            json={"operation": "add_used", "days": used, "reason": "opening balance"},
            headers=AUTH_HEADERS,
        )
        assert resp.status_code == 200
    return balance_id


async def _get_balance(client: AsyncClient, balance_id: str) -> dict[str, Any]:
    resp = await client.get(f"/balances/{balance_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data: dict[str, Any] = resp.json()
    return data


def _submit_payload(
    start: str = "2025-03-10",
    end: str | None = "2025-03-12",
    leave_type: str = "sick",
    employee_id: uuid.UUID = EMPLOYEE_ID,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"employee_id": str(employee_id), "leave_type": leave_type, "start_date": start}
    if end is not None:
        payload["end_date"] = end
    payload.update(extra)
    return payload


async def _submit(client: AsyncClient, headers: dict[str, str] = EMPLOYEE_HEADERS, **kwargs: Any) -> dict[str, Any]:
    resp = await client.post(REQUESTS_URL, json=_submit_payload(**kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    data: dict[str, Any] = resp.json()
    return data


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


async def test_scenario_a_submit_then_approve(
    async_client: AsyncClient, attendance_service: InMemoryAttendanceService
) -> None:
    balance_id = await _assign_balance(async_client, allocated=10, used=2)

    request = await _submit(async_client)
    assert request["status"] == "pending"
    assert request["total_days"] == 3

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 3
    assert balance["remaining"] == 5

    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    approved = resp.json()
    assert approved["status"] == "approved"
    assert approved["reviewed_by"] == str(ADMIN_ID)

    balance = await _get_balance(async_client, balance_id)
    assert balance["used"] == 5
    assert balance["pending"] == 0
    assert balance["remaining"] == 5

    records = attendance_service.records_for(EMPLOYEE_ID)
    assert [r.date for r in records] == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]
    assert all(r.status == "leave" and r.status_reason == "Sick leave" and r.source == "leave" for r in records)


async def test_scenario_b_insufficient_balance_rejected_before_mutation(async_client: AsyncClient) -> None:
    balance_id = await _assign_balance(async_client, allocated=10, used=2)

    # Nine working days: 10-14 and 17-20 March.
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload("2025-03-10", "2025-03-20"), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InsufficientBalanceError"
    assert body["context"]["shortfall"] == 1
    assert body["context"]["available"] == 8

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 0
    assert balance["remaining"] == 8
    assert balance["version"] == 2

    listed = (await async_client.get(REQUESTS_URL, headers=AUTH_HEADERS)).json()
    assert listed["total"] == 0


async def test_scenario_c_half_day_stamps_single_record(
    async_client: AsyncClient, attendance_service: InMemoryAttendanceService
) -> None:
    balance_id = await _assign_balance(async_client)

    request = await _submit(
        async_client, start="2025-03-10", end=None, is_half_day=True, half_day_period="morning"
    )
    assert request["total_days"] == 0.5
    assert request["end_date"] == "2025-03-10"

    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=AUTH_HEADERS)
    assert resp.status_code == 200

    records = attendance_service.records_for(EMPLOYEE_ID)
    assert len(records) == 1
    assert records[0].date == date(2025, 3, 10)
    assert records[0].status == "half_day"
    assert "Half day (morning half)" in records[0].status_reason

    balance = await _get_balance(async_client, balance_id)
    assert balance["used"] == 0.5
    assert balance["remaining"] == 9.5


async def test_submit_charges_working_days_only(async_client: AsyncClient) -> None:
    await async_client.post(
        "/holidays", json={"date": "2025-03-12", "name": "Company Day"}, headers=AUTH_HEADERS
    )
    await _assign_balance(async_client, leave_type="annual", allocated=20)

    # Friday to Friday: two weekend days and one holiday are not charged.
    request = await _submit(async_client, start="2025-03-07", end="2025-03-14", leave_type="annual")
    assert request["total_days"] == 5


async def test_submit_weekend_only_is_rejected(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload("2025-03-08", "2025-03-09"), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidRangeError"


async def test_submit_inverted_range(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload("2025-03-12", "2025-03-10"), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidRangeError"


async def test_submit_without_balance(async_client: AsyncClient) -> None:
    resp = await async_client.post(REQUESTS_URL, json=_submit_payload(), headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "InsufficientBalanceError"
    assert body["detail"] == "No sick leave balance assigned for 2025"


async def test_submit_for_another_employee_forbidden(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload(employee_id=OTHER_EMPLOYEE_ID), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403


async def test_admin_submits_on_behalf(async_client: AsyncClient) -> None:
    await _assign_balance(async_client, employee_id=OTHER_EMPLOYEE_ID)
    request = await _submit(async_client, headers=AUTH_HEADERS, employee_id=OTHER_EMPLOYEE_ID)
    assert request["employee_id"] == str(OTHER_EMPLOYEE_ID)


async def test_submit_unknown_employee(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload(employee_id=uuid.uuid4()), headers=AUTH_HEADERS
    )
    assert resp.status_code == 404


async def test_half_day_requires_period(async_client: AsyncClient) -> None:
    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload(end=None, is_half_day=True), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 422


async def test_overlapping_submission_returns_409(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    first = await _submit(async_client, start="2025-03-10", end="2025-03-12")

    resp = await async_client.post(
        REQUESTS_URL, json=_submit_payload("2025-03-12", "2025-03-14"), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "OverlapError"
    assert body["context"]["conflicting_request_id"] == first["id"]


async def test_resubmit_after_cancel_is_allowed(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    first = await _submit(async_client)
    await async_client.post(f"{REQUESTS_URL}/{first['id']}/cancel", headers=EMPLOYEE_HEADERS)

    second = await _submit(async_client)
    assert second["id"] != first["id"]


# ---------------------------------------------------------------------------
# Reject and cancel
# ---------------------------------------------------------------------------


async def test_scenario_e_reject_releases_pending(async_client: AsyncClient) -> None:
    balance_id = await _assign_balance(async_client, leave_type="annual", allocated=20)
    request = await _submit(async_client, start="2025-03-10", end="2025-03-13", leave_type="annual")

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 4
    remaining_before = balance["remaining"]

    resp = await async_client.post(
        f"{REQUESTS_URL}/{request['id']}/reject", json={"reason": "Team offsite"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    rejected = resp.json()
    assert rejected["status"] == "rejected"
    assert rejected["rejection_reason"] == "Team offsite"

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 0
    assert balance["remaining"] == remaining_before + 4


async def test_reject_requires_reason(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)

    resp = await async_client.post(
        f"{REQUESTS_URL}/{request['id']}/reject", json={"reason": "   "}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationFailedError"

    current = (await async_client.get(f"{REQUESTS_URL}/{request['id']}", headers=EMPLOYEE_HEADERS)).json()
    assert current["status"] == "pending"


async def test_reject_does_not_touch_attendance(
    async_client: AsyncClient, attendance_service: InMemoryAttendanceService
) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)
    await async_client.post(f"{REQUESTS_URL}/{request['id']}/reject", json={"reason": "No"}, headers=AUTH_HEADERS)
    assert attendance_service.records == {}


async def test_cancel_by_owner_releases_days(async_client: AsyncClient) -> None:
    balance_id = await _assign_balance(async_client)
    request = await _submit(async_client)

    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/cancel", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    cancelled = resp.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_at"] is not None

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 0
    assert balance["remaining"] == 10


@pytest.mark.parametrize("headers", [OTHER_HEADERS, AUTH_HEADERS])
async def test_cancel_by_someone_else_forbidden(async_client: AsyncClient, headers: dict[str, str]) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)

    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/cancel", headers=headers)
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


async def test_double_approve_is_refused(async_client: AsyncClient) -> None:
    balance_id = await _assign_balance(async_client)
    request = await _submit(async_client)

    first = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=AUTH_HEADERS)
    assert first.status_code == 200
    second = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=AUTH_HEADERS)
    assert second.status_code == 400
    body = second.json()
    assert body["error"] == "InvalidStateTransitionError"
    assert body["detail"] == "Cannot approve leave request with status: approved"

    balance = await _get_balance(async_client, balance_id)
    assert balance["used"] == 3


@pytest.mark.parametrize("action", ["approve", "cancel"])
async def test_terminal_request_cannot_move(async_client: AsyncClient, action: str) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)
    await async_client.post(f"{REQUESTS_URL}/{request['id']}/reject", json={"reason": "No"}, headers=AUTH_HEADERS)

    headers = AUTH_HEADERS if action == "approve" else EMPLOYEE_HEADERS
    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/{action}", headers=headers)
    assert resp.status_code == 400


async def test_employee_cannot_approve(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)
    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_approve_unknown_request(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{REQUESTS_URL}/{uuid.uuid4()}/approve", headers=AUTH_HEADERS)
    assert resp.status_code == 404


async def test_attendance_failure_keeps_approval(async_client: AsyncClient) -> None:
    failing = _FailingAttendanceService({date(2025, 3, 11)})
    set_attendance_service(failing)
    balance_id = await _assign_balance(async_client)
    request = await _submit(async_client)

    resp = await async_client.post(f"{REQUESTS_URL}/{request['id']}/approve", headers=AUTH_HEADERS)
    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "PartialFailureError"
    assert body["context"]["failed_dates"] == ["2025-03-11"]
    assert failing.written == [date(2025, 3, 10), date(2025, 3, 12)]

    current = (await async_client.get(f"{REQUESTS_URL}/{request['id']}", headers=AUTH_HEADERS)).json()
    assert current["status"] == "approved"
    balance = await _get_balance(async_client, balance_id)
    assert balance["used"] == 3
    assert balance["pending"] == 0


# ---------------------------------------------------------------------------
# Validation and reads
# ---------------------------------------------------------------------------


async def test_validate_dry_run(async_client: AsyncClient) -> None:
    balance_id = await _assign_balance(async_client)

    resp = await async_client.post(
        f"{REQUESTS_URL}/validate", json=_submit_payload("2025-03-07", "2025-03-10"), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_valid"] is True
    assert data["duration"]["working_days"] == 2
    assert [d["date"] for d in data["non_working_days"]] == ["2025-03-08", "2025-03-09"]
    assert data["balance"]["available"] == 10

    balance = await _get_balance(async_client, balance_id)
    assert balance["pending"] == 0


async def test_validate_reports_every_problem(async_client: AsyncClient) -> None:
    await _assign_balance(async_client, allocated=2)
    existing = await _submit(async_client, start="2025-03-10", end="2025-03-10")

    resp = await async_client.post(
        f"{REQUESTS_URL}/validate", json=_submit_payload("2025-03-10", "2025-03-14"), headers=EMPLOYEE_HEADERS
    )
    data = resp.json()
    assert data["is_valid"] is False
    assert data["conflicting_request_id"] == existing["id"]
    assert data["balance"]["is_valid"] is False
    assert len(data["messages"]) == 2


async def test_overlap_endpoint(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)

    params = {"employee_id": str(EMPLOYEE_ID), "start_date": "2025-03-11", "end_date": "2025-03-11"}
    resp = await async_client.get(f"{REQUESTS_URL}/overlap", params=params, headers=EMPLOYEE_HEADERS)
    assert resp.json()["has_overlap"] is True
    assert resp.json()["conflicting_request"]["id"] == request["id"]

    params["exclude_request_id"] = request["id"]
    resp = await async_client.get(f"{REQUESTS_URL}/overlap", params=params, headers=EMPLOYEE_HEADERS)
    assert resp.json()["has_overlap"] is False


async def test_list_filters(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    await _assign_balance(async_client, leave_type="annual", allocated=20)
    await _assign_balance(async_client, employee_id=OTHER_EMPLOYEE_ID)
    sick = await _submit(async_client, start="2025-03-10", end="2025-03-10")
    await _submit(async_client, start="2025-04-07", end="2025-04-08", leave_type="annual")
    await _submit(async_client, headers=OTHER_HEADERS, employee_id=OTHER_EMPLOYEE_ID)
    await async_client.post(f"{REQUESTS_URL}/{sick['id']}/approve", headers=AUTH_HEADERS)

    everything = (await async_client.get(REQUESTS_URL, headers=AUTH_HEADERS)).json()
    assert everything["total"] == 3

    own = (await async_client.get(REQUESTS_URL, headers=EMPLOYEE_HEADERS)).json()
    assert own["total"] == 2

    # Employees cannot widen the filter to someone else.
    spoofed = (
        await async_client.get(REQUESTS_URL, params={"employee_id": str(OTHER_EMPLOYEE_ID)}, headers=EMPLOYEE_HEADERS)
    ).json()
    assert {r["employee_id"] for r in spoofed["items"]} == {str(EMPLOYEE_ID)}

    approved = (await async_client.get(REQUESTS_URL, params={"status": "approved"}, headers=AUTH_HEADERS)).json()
    assert [r["id"] for r in approved["items"]] == [sick["id"]]

    annual = (await async_client.get(REQUESTS_URL, params={"leave_type": "annual"}, headers=AUTH_HEADERS)).json()
    assert annual["total"] == 1

    april = (
        await async_client.get(
            REQUESTS_URL, params={"date_from": "2025-04-01", "date_to": "2025-04-30"}, headers=AUTH_HEADERS
        )
    ).json()
    assert april["total"] == 1


async def test_get_request_of_other_employee_forbidden(async_client: AsyncClient) -> None:
    await _assign_balance(async_client)
    request = await _submit(async_client)
    resp = await async_client.get(f"{REQUESTS_URL}/{request['id']}", headers=OTHER_HEADERS)
    assert resp.status_code == 403
