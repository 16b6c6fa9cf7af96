"""Seed script for development data.

Run with:  python -m leave_engine.seed   (from backend/, with the API running)
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

# Well-known employee UUIDs
ALICE_ID = "00000000-0000-0000-0000-000000000002"
BOB_ID = "00000000-0000-0000-0000-000000000003"
CAROL_ID = "00000000-0000-0000-0000-000000000004"

EMPLOYEES = [
    {
        "id": ALICE_ID,
        "first_name": "Alice",
        "last_name": "Johnson",
        "email": "alice.johnson@example.com",
        "department": "Engineering",
        "designation": "Senior Engineer",
    },
    {
        "id": BOB_ID,
        "first_name": "Bob",
        "last_name": "Smith",
        "email": "bob.smith@example.com",
        "department": "Engineering",
        "designation": "Engineer",
    },
    {
        "id": CAROL_ID,
        "first_name": "Carol",
        "last_name": "Williams",
        "email": "carol.williams@example.com",
        "department": "Operations",
        "designation": "Operations Manager",
    },
]

WORKING_RULE = {
    "rule_name": "Standard Monday-Friday",
    "working_days": [1, 2, 3, 4, 5],
    "weekend_days": [0, 6],
    "effective_from": "2024-01-01",
    "is_default": True,
}

HOLIDAYS = [
    {"date": "2024-01-01", "name": "New Year's Day", "holiday_type": "RECURRING"},
    {"date": "2024-12-25", "name": "Christmas Day", "holiday_type": "RECURRING"},
    {"date": "2026-05-25", "name": "Memorial Day"},
    {"date": "2026-09-07", "name": "Labor Day"},
]

# Allocations on top of the default quotas: (employee_id, leave_type, allocated)
EXTRA_ALLOCATIONS = [
    (ALICE_ID, "annual", 25),
    (CAROL_ID, "emergency", 3),
]


async def _safe_post(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} (already exists)")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed employees via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        resp = await client.put(f"{BASE_URL}/employees/{emp['id']}", json=body, headers=HEADERS)
        status = "OK" if resp.status_code == 200 else f"ERROR {resp.status_code}"
        print(f"  [{status}] {emp['first_name']} {emp['last_name']}")


async def seed_calendar(client: httpx.AsyncClient) -> None:
    """Seed the default working rule and holidays."""
    print("\n--- Seeding calendar ---")
    resp = await client.get(f"{BASE_URL}/working-rules", headers=HEADERS)
    if resp.status_code == 200 and resp.json()["total"] > 0:
        print("  [SKIP] Working rules already configured")
    else:
        await _safe_post(client, f"{BASE_URL}/working-rules", WORKING_RULE, "Working rule: Monday-Friday")

    for holiday in HOLIDAYS:
        await _safe_post(client, f"{BASE_URL}/holidays", holiday, f"Holiday: {holiday['name']}")


async def seed_balances(client: httpx.AsyncClient, year: int) -> None:
    """Assign default quotas, then the extra allocations."""
    print(f"\n--- Seeding balances for {year} ---")
    await _safe_post(
        client,
        f"{BASE_URL}/balances/bulk-assign-defaults",
        {"employee_ids": [e["id"] for e in EMPLOYEES], "year": year},
        "Default quotas",
    )
    for employee_id, leave_type, allocated in EXTRA_ALLOCATIONS:
        await _safe_post(
            client,
            f"{BASE_URL}/balances/assign",
            {"employee_id": employee_id, "year": year, "allocations": {leave_type: {"allocated": allocated}}},
            f"Assign {employee_id[:12]}... {leave_type}={allocated}",
        )


def _next_weekday(start: date, days_ahead: int) -> date:
    candidate = start + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


async def seed_requests(client: httpx.AsyncClient) -> None:
    """Seed one pending request and one approved request."""
    print("\n--- Seeding leave requests ---")
    today = date.today()

    bob_start = _next_weekday(today, 7)
    await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": BOB_ID,
            "leave_type": "annual",
            "start_date": bob_start.isoformat(),
            "end_date": (bob_start + timedelta(days=2)).isoformat(),
            "reason": "Family vacation",
        },
        "Request: Bob annual leave (pending)",
    )

    carol_day = _next_weekday(today, 14)
    result = await _safe_post(
        client,
        f"{BASE_URL}/leave-requests",
        {
            "employee_id": CAROL_ID,
            "leave_type": "sick",
            "start_date": carol_day.isoformat(),
            "is_half_day": True,
            "half_day_period": "morning",
            "reason": "Doctor appointment",
        },
        "Request: Carol half-day sick leave",
    )
    if result:
        resp = await client.post(f"{BASE_URL}/leave-requests/{result['id']}/approve", headers=HEADERS)
        if resp.status_code == 200:
            print("  [OK] Approved Carol's sick leave request")
        else:
            print(f"  [ERROR] Approving Carol's request: {resp.status_code}")


async def main() -> None:
    print("=" * 60)
    print("  HR Leave Engine - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_employees(client)
        await seed_calendar(client)
        await seed_balances(client, date.today().year)
        await seed_requests(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
