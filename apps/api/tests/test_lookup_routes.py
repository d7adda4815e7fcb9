import httpx
import pytest

from main import app


VEHICLE_PAYLOAD = {"result": {"owner": "A KUMAR", "model": "SWIFT"}}


@pytest.fixture
def vendor_answers(vendor):
    """Install a mock vendor client on the app for the duration of a test."""

    def _install(handler):
        app.state.vendor_client = vendor(handler)

    return _install


async def _entitled_officer(seed, *, credits=10, cost=2):
    capability_id = await seed.capability("vehicle_rc_search")
    plan_id = await seed.plan(links=[(capability_id, True, cost)])
    return await seed.officer(plan_id=plan_id, credits=credits)


@pytest.mark.asyncio
async def test_lookup_route_success_and_history(portal_client, seed, headers_for, vendor_answers):
    officer_id = await _entitled_officer(seed)
    vendor_answers(lambda request: httpx.Response(200, json=VEHICLE_PAYLOAD))
    headers = headers_for(officer_id)

    response = await portal_client.post(
        "/lookups/vehicle_rc_search", json={"vehicle_number": "MH12AB1234"}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["balance_after"] == 8
    assert body["result"] == VEHICLE_PAYLOAD

    own_history = await portal_client.get("/queries", headers=headers)
    items = own_history.json()["items"]
    assert [item["id"] for item in items] == [body["query_id"]]
    assert "full_result" not in items[0]

    admin_headers = headers_for("admin-1", role="admin")
    admin_view = await portal_client.get(f"/queries/{body['query_id']}", headers=admin_headers)
    assert admin_view.json()["full_result"] == VEHICLE_PAYLOAD

    summary = await portal_client.get("/credits", headers=headers)
    assert summary.json()["credits_used"] == 2
    assert summary.json()["credits_remaining"] == 8


@pytest.mark.asyncio
async def test_lookup_route_error_mapping(portal_client, seed, headers_for, vendor_answers):
    officer_id = await _entitled_officer(seed, credits=3, cost=2)
    broke_id = await seed.officer(plan_id=None, credits=0)
    vendor_answers(lambda request: httpx.Response(500, text="upstream exploded"))
    headers = headers_for(officer_id)

    invalid = await portal_client.post("/lookups/vehicle_rc_search", json={"vehicle_number": ""}, headers=headers)
    failed = await portal_client.post(
        "/lookups/vehicle_rc_search", json={"vehicle_number": "MH12AB1234"}, headers=headers
    )
    not_entitled = await portal_client.post(
        "/lookups/vehicle_rc_search", json={"vehicle_number": "MH12AB1234"}, headers=headers_for(broke_id)
    )
    unknown = await portal_client.post("/lookups/credit_score", json={}, headers=headers)

    assert invalid.status_code == 422
    assert failed.status_code == 502
    assert failed.json()["detail"]["message"] == "Lookup failed. No credits were deducted."
    assert "upstream exploded" not in failed.text
    assert not_entitled.status_code == 403
    assert not_entitled.json()["detail"]["code"] == "no_plan"
    assert unknown.status_code == 403
    assert await seed.balance(officer_id) == 3


@pytest.mark.asyncio
async def test_lookup_route_insufficient_credits(portal_client, seed, headers_for, vendor_answers):
    officer_id = await _entitled_officer(seed, credits=1, cost=2)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=VEHICLE_PAYLOAD)

    vendor_answers(handler)

    response = await portal_client.post(
        "/lookups/vehicle_rc_search", json={"vehicle_number": "MH12AB1234"}, headers=headers_for(officer_id)
    )

    assert response.status_code == 402
    assert response.json()["detail"]["required"] == 2
    assert response.json()["detail"]["available"] == 1
    assert calls == []


@pytest.mark.asyncio
async def test_enabled_capabilities_for_officer(portal_client, seed, headers_for):
    officer_id = await _entitled_officer(seed, cost=5)

    response = await portal_client.get("/lookups/capabilities", headers=headers_for(officer_id))
    admin = await portal_client.get("/lookups/capabilities", headers=headers_for("admin-1", role="admin"))

    assert response.status_code == 200
    assert response.json()["items"][0]["key"] == "vehicle_rc_search"
    assert response.json()["items"][0]["credit_cost"] == 5
    assert admin.status_code == 403


@pytest.mark.asyncio
async def test_officer_cannot_read_another_officers_query(portal_client, seed, headers_for, vendor_answers):
    owner_id = await _entitled_officer(seed)
    snooper_id = await seed.officer()
    vendor_answers(lambda request: httpx.Response(200, json=VEHICLE_PAYLOAD))

    created = await portal_client.post(
        "/lookups/vehicle_rc_search", json={"vehicle_number": "MH12AB1234"}, headers=headers_for(owner_id)
    )
    query_id = created.json()["query_id"]

    hidden = await portal_client.get(f"/queries/{query_id}", headers=headers_for(snooper_id))
    cross = await portal_client.get(f"/queries?officer_id={owner_id}", headers=headers_for(snooper_id))

    assert hidden.status_code == 404
    assert cross.status_code == 403
