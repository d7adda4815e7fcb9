import json

import httpx
import pytest

from config import settings
from services.lookups.adapters import (
    INVALID_JSON_MESSAGE,
    DeepvueAdapter,
    LeakOsintAdapter,
    PlanApiHeaderAdapter,
    PlanApiMemberQueryAdapter,
    PlanApiQueryAdapter,
    SignzyAdapter,
    split_credential,
)
from services.lookups.registry import LOOKUP_SPECS, get_lookup_spec
from services.lookups.types import InvalidLookupRequest, VendorRequest


def _request(**params) -> VendorRequest:
    return VendorRequest(params=params, input_summary="test")


@pytest.mark.asyncio
async def test_signzy_sends_raw_token_and_accepts_result(vendor):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": {"owner": "A KUMAR", "model": "SWIFT"}})

    adapter = SignzyAdapter("/api/v3/vehicle/detailedsearches")
    result = await adapter.call("signzy-token", _request(vehicleNumber="MH12AB1234"), vendor(handler))

    assert result.ok
    assert result.payload["result"]["owner"] == "A KUMAR"
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v3/vehicle/detailedsearches"
    assert seen[0].headers["Authorization"] == "signzy-token"
    assert json.loads(seen[0].content) == {"vehicleNumber": "MH12AB1234"}


@pytest.mark.asyncio
async def test_signzy_missing_success_marker_is_failure(vendor):
    client = vendor(lambda request: httpx.Response(200, json={"message": "no record"}))

    result = await SignzyAdapter("/api/v3/phonekyc/phone-prefill-v2", success_field="response").call(
        "token", _request(mobileNumber="9876543210"), client
    )

    assert not result.ok
    assert "response" in result.message
    assert result.payload == {"message": "no record"}


@pytest.mark.asyncio
async def test_non_2xx_is_failure_with_status(vendor):
    client = vendor(lambda request: httpx.Response(503, json={"error": "maintenance"}))

    result = await SignzyAdapter("/x").call("token", _request(), client)

    assert not result.ok
    assert result.http_status == 503
    assert result.message.startswith("API request failed: 503")


@pytest.mark.asyncio
async def test_non_json_2xx_body_is_failure(vendor):
    client = vendor(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    result = await SignzyAdapter("/x").call("token", _request(), client)

    assert not result.ok
    assert result.message == INVALID_JSON_MESSAGE


@pytest.mark.asyncio
async def test_timeout_is_failure_with_reason(vendor, monkeypatch):
    monkeypatch.setattr(settings, "VENDOR_TIMEOUT_OVERRIDES", {"signzy": 2.5})

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.extensions["timeout"]["read"] == 2.5
        raise httpx.ReadTimeout("read timed out", request=request)

    result = await SignzyAdapter("/x").call("token", _request(), vendor(handler))

    assert not result.ok
    assert result.message == "Vendor request timed out after 2.5s"


@pytest.mark.asyncio
async def test_planapi_malformed_credential_fails_before_network(vendor):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"status": "Success"})

    result = await PlanApiHeaderAdapter("/api/Ekyc/MCACinSearch").call("only-user:pass", _request(), vendor(handler))

    assert not result.ok
    assert "Invalid API key format" in result.message
    assert calls == []


@pytest.mark.asyncio
async def test_planapi_header_credential_split_and_status_marker(vendor):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "Success", "data": {"company": "ACME"}})

    result = await PlanApiHeaderAdapter("/api/Ekyc/VPA_Info").call(
        "user-1:pa:ss:token-9", _request(UpiId="a@okbank"), vendor(handler)
    )

    assert result.ok
    headers = seen[0].headers
    assert headers["ApiUserID"] == "user-1"
    assert headers["ApiPassword"] == "pa"
    assert headers["TokenID"] == "ss:token-9"


@pytest.mark.asyncio
async def test_planapi_header_failure_status(vendor):
    client = vendor(lambda request: httpx.Response(200, json={"status": "Failed", "msg": "Invalid CIN"}))

    result = await PlanApiHeaderAdapter("/api/Ekyc/MCACinSearch").call("u:p:t", _request(), client)

    assert not result.ok
    assert "Invalid CIN" in result.message


@pytest.mark.asyncio
async def test_planapi_query_credential_goes_in_query_string(vendor):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ERROR": "0", "Operator": "Jio", "Circle": "Kerala"})

    result = await PlanApiQueryAdapter("/api/Mobile/OperatorFetchNew").call(
        "api-user:api-pass", _request(Mobileno="9876543210"), vendor(handler)
    )

    assert result.ok
    params = seen[0].url.params
    assert seen[0].method == "GET"
    assert params["ApiUserID"] == "api-user"
    assert params["ApiPassword"] == "api-pass"
    assert params["Mobileno"] == "9876543210"


@pytest.mark.asyncio
async def test_planapi_query_error_flag_is_failure(vendor):
    client = vendor(lambda request: httpx.Response(200, json={"ERROR": "1", "Message": "Invalid number"}))

    result = await PlanApiQueryAdapter("/api/Mobile/OperatorFetchNew").call("u:p", _request(), client)

    assert not result.ok
    assert "Invalid number" in result.message


@pytest.mark.asyncio
async def test_member_query_adapter_uses_configured_member_id(vendor, monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ERROR": "0", "LastRecharge": "199"})

    adapter = PlanApiMemberQueryAdapter("/api/Mobile/CheckLastRecharge")

    monkeypatch.setattr(settings, "PLANAPI_MEMBER_ID", "")
    missing = await adapter.call("secret", _request(), vendor(handler))
    assert not missing.ok
    assert seen == []

    monkeypatch.setattr(settings, "PLANAPI_MEMBER_ID", "M-42")
    result = await adapter.call("secret", _request(Operator_Code="JIO", Mobile_No="9876543210"), vendor(handler))
    assert result.ok
    assert seen[0].url.params["Apimember_Id"] == "M-42"
    assert seen[0].url.params["Api_Password"] == "secret"


@pytest.mark.asyncio
async def test_deepvue_exchanges_token_before_lookup(vendor):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v1/authorize":
            return httpx.Response(200, json={"access_token": "bearer-abc"})
        return httpx.Response(200, json={"code": 200, "data": [{"rc_number": "KL07AB1234"}]})

    result = await DeepvueAdapter("/v1/mobile-intelligence/mobile-to-vehicle-rc").call(
        "client-secret:client-id", _request(mobile_number="9876543210"), vendor(handler)
    )

    assert result.ok
    assert [request.url.path for request in seen] == [
        "/v1/authorize",
        "/v1/mobile-intelligence/mobile-to-vehicle-rc",
    ]
    assert b"client_id=client-id" in seen[0].content
    assert seen[1].headers["Authorization"] == "Bearer bearer-abc"
    assert seen[1].headers["x-api-key"] == "client-secret"


@pytest.mark.asyncio
async def test_deepvue_missing_access_token_is_failure(vendor):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"detail": "ok"})

    result = await DeepvueAdapter("/v1/x").call("secret:id", _request(), vendor(handler))

    assert not result.ok
    assert "Access token" in result.message
    assert calls == ["/v1/authorize"]


@pytest.mark.asyncio
async def test_leakosint_puts_token_in_body(vendor):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"List": {"SomeBreach": {"Data": []}}})

    result = await LeakOsintAdapter().call("leak-token", _request(request="someone@example.com"), vendor(handler))

    assert result.ok
    assert seen[0]["token"] == "leak-token"
    assert seen[0]["request"] == "someone@example.com"
    assert 100 <= seen[0]["limit"] <= 10000


@pytest.mark.asyncio
async def test_leakosint_error_code_is_failure(vendor):
    client = vendor(lambda request: httpx.Response(200, json={"Error code": "bad token"}))

    result = await LeakOsintAdapter().call("leak-token", _request(request="x"), client)

    assert not result.ok
    assert "bad token" in result.message


def test_split_credential_keeps_extra_colons_in_last_field():
    assert split_credential("user:pass:tok:en", 3) == ["user", "pass", "tok:en"]
    assert split_credential("user::token", 3) is None
    assert split_credential("", 2) is None


def test_registry_covers_every_capability_slug():
    assert set(LOOKUP_SPECS) == {
        "phone_prefill_v2",
        "vehicle_rc_search",
        "phone_to_credit_business",
        "phone_to_udyam",
        "mca_cin_search",
        "upi_info",
        "upi_validation",
        "voter_id_verification",
        "operator_circle_check",
        "recharge_status_check",
        "mobile_to_vehicle_rc",
        "leak_osint_search",
    }
    assert get_lookup_spec("  Vehicle_RC_Search ").key == "vehicle_rc_search"
    assert get_lookup_spec("vehicle") is None


def test_registry_input_validation_and_normalisation():
    mobile_spec = get_lookup_spec("operator_circle_check")
    parsed = mobile_spec.parse({"mobile_number": "+91 98765-43210"})
    assert parsed.mobile_number == "9876543210"
    assert mobile_spec.build_request(parsed).params == {"Mobileno": "9876543210"}

    cin_spec = get_lookup_spec("mca_cin_search")
    assert cin_spec.parse({"cin": " u72900ka2015ptc082988 "}).cin == "U72900KA2015PTC082988"
    with pytest.raises(InvalidLookupRequest):
        cin_spec.parse({"cin": "12345"})

    with pytest.raises(InvalidLookupRequest):
        get_lookup_spec("upi_info").parse({"upi_id": "nobank@"})

    prefill = get_lookup_spec("phone_prefill_v2")
    body = prefill.build_request(prefill.parse({"mobile_number": "9876543210"})).params
    assert body["mobileNumber"] == "9876543210"
    assert body["consent"]["consentFlag"] is True
