import pytest

from services.entitlements import list_enabled_capabilities, resolve
from services.lookups.types import NotEntitled


@pytest.mark.asyncio
async def test_officer_without_plan_is_not_entitled(session_maker, seed):
    await seed.capability()
    officer_id = await seed.officer(plan_id=None)

    async with session_maker() as session:
        with pytest.raises(NotEntitled) as exc_info:
            await resolve(session, officer_id, "vehicle_rc_search")
    assert exc_info.value.reason == "no_plan"


@pytest.mark.asyncio
async def test_capability_missing_from_plan_is_not_enabled(session_maker, seed):
    other = await seed.capability("upi_info", service_provider="PlanAPI", api_key="u:p:t")
    await seed.capability("vehicle_rc_search")
    plan_id = await seed.plan(links=[(other, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        with pytest.raises(NotEntitled) as exc_info:
            await resolve(session, officer_id, "vehicle_rc_search")
    assert exc_info.value.reason == "not_enabled"


@pytest.mark.asyncio
async def test_disabled_link_and_disabled_type_are_not_enabled(session_maker, seed):
    rc = await seed.capability("vehicle_rc_search")
    udyam = await seed.capability("phone_to_udyam", type="DISABLED")
    plan_id = await seed.plan(links=[(rc, False, 2), (udyam, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        for key in ("vehicle_rc_search", "phone_to_udyam"):
            with pytest.raises(NotEntitled) as exc_info:
                await resolve(session, officer_id, key)
            assert exc_info.value.reason == "not_enabled"


@pytest.mark.asyncio
async def test_inactive_or_missing_key_is_inactive_key(session_maker, seed):
    inactive = await seed.capability("vehicle_rc_search", key_status="Inactive")
    keyless = await seed.capability("phone_to_udyam", api_key=None)
    plan_id = await seed.plan(links=[(inactive, True, 2), (keyless, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        for key in ("vehicle_rc_search", "phone_to_udyam"):
            with pytest.raises(NotEntitled) as exc_info:
                await resolve(session, officer_id, key)
            assert exc_info.value.reason == "inactive_key"


@pytest.mark.asyncio
async def test_unknown_capability_key_is_not_enabled(session_maker, seed):
    capability_id = await seed.capability()
    plan_id = await seed.plan(links=[(capability_id, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        with pytest.raises(NotEntitled) as exc_info:
            await resolve(session, officer_id, "vehicle")
    assert exc_info.value.reason == "not_enabled"


@pytest.mark.asyncio
async def test_grant_carries_plan_cost_and_decrypted_credential(session_maker, seed):
    capability_id = await seed.capability(api_key="signzy-secret", default_credit_charge=5)
    plan_id = await seed.plan(links=[(capability_id, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        grant = await resolve(session, officer_id, "Vehicle_RC_Search")

    assert grant.officer_id == officer_id
    assert grant.capability_id == capability_id
    assert grant.capability_key == "vehicle_rc_search"
    assert grant.cost == 2
    assert grant.credential == "signzy-secret"


@pytest.mark.asyncio
async def test_unset_plan_cost_falls_back_to_capability_default_and_free_costs_nothing(session_maker, seed):
    rc = await seed.capability(default_credit_charge=4)
    free = await seed.capability("operator_circle_check", type="FREE", api_key="user:pass", default_credit_charge=3)
    plan_id = await seed.plan(links=[(rc, True, None), (free, True, 7)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        assert (await resolve(session, officer_id, "vehicle_rc_search")).cost == 4
        assert (await resolve(session, officer_id, "operator_circle_check")).cost == 0


@pytest.mark.asyncio
async def test_resolve_is_a_pure_read(session_maker, seed):
    capability_id = await seed.capability()
    plan_id = await seed.plan(links=[(capability_id, True, 2)])
    officer_id = await seed.officer(plan_id=plan_id, credits=10)

    async with session_maker() as session:
        first = await resolve(session, officer_id, "vehicle_rc_search")
    async with session_maker() as session:
        second = await resolve(session, officer_id, "vehicle_rc_search")

    assert first == second
    assert await seed.balance(officer_id) == 10


@pytest.mark.asyncio
async def test_enabled_capability_listing_reports_price_and_availability(session_maker, seed):
    rc = await seed.capability(default_credit_charge=3)
    upi = await seed.capability("upi_info", api_key="u:p:t", key_status="Inactive", service_provider="PlanAPI")
    hidden = await seed.capability("phone_to_udyam")
    plan_id = await seed.plan(links=[(rc, True, None), (upi, True, 1), (hidden, False, 1)])
    officer_id = await seed.officer(plan_id=plan_id)

    async with session_maker() as session:
        items = await list_enabled_capabilities(session, officer_id)

    by_key = {item["key"]: item for item in items}
    assert set(by_key) == {"vehicle_rc_search", "upi_info"}
    assert by_key["vehicle_rc_search"]["credit_cost"] == 3
    assert by_key["vehicle_rc_search"]["available"] is True
    assert by_key["upi_info"]["available"] is False
