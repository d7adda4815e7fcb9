import asyncio

import httpx
import pytest

from models.credit_transaction import CreditTransaction
from models.query_log import QueryLog
from services.lookup_workflow import run_lookup
from services.lookups.types import LedgerWriteError


@pytest.mark.asyncio
async def test_concurrent_lookups_never_overdraw_balance(session_maker, seed, vendor):
    """Five lookups pass pre-flight together; only as many as the balance covers get charged."""
    capability_id = await seed.capability("vehicle_rc_search")
    plan_id = await seed.plan(links=[(capability_id, True, 3)])
    officer_id = await seed.officer(plan_id=plan_id, credits=10)

    attempts = 5
    arrived = 0
    all_in_flight = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal arrived
        arrived += 1
        if arrived == attempts:
            all_in_flight.set()
        await asyncio.wait_for(all_in_flight.wait(), timeout=10)
        return httpx.Response(200, json={"result": {"owner": "A KUMAR", "model": "SWIFT"}})

    client = vendor(handler)

    async def one_lookup():
        async with session_maker() as session:
            return await run_lookup(session, officer_id, "vehicle_rc_search", {"vehicle_number": "MH12AB1234"}, client)

    outcomes = await asyncio.gather(*(one_lookup() for _ in range(attempts)), return_exceptions=True)

    succeeded = [item for item in outcomes if isinstance(item, dict)]
    lost = [item for item in outcomes if isinstance(item, LedgerWriteError)]
    assert len(succeeded) == 3
    assert len(lost) == 2
    assert await seed.balance(officer_id) == 1

    deductions = await seed.rows(CreditTransaction, officer_id=officer_id, action="Deduction")
    assert len(deductions) == 3
    assert sorted(row.balance_after for row in deductions) == [1, 4, 7]
    assert await seed.count(QueryLog, status="Success") == 3
    assert await seed.count(QueryLog, error_code="ledger_write_failed") == 2
