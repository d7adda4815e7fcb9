"""Capability registry keyed by stable slug.

Each entry binds a ``Capability.key`` to the vendor adapter that serves it,
the input model that validates officer input, and the audit labels written
to the query log. Keys are resolved here once at import time; nothing in the
workflow matches capabilities by display name.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError, field_validator

from services.lookups.adapters import (
    BaseVendorAdapter,
    DeepvueAdapter,
    LeakOsintAdapter,
    PlanApiHeaderAdapter,
    PlanApiMemberQueryAdapter,
    PlanApiQueryAdapter,
    SignzyAdapter,
)
from services.lookups.types import InvalidLookupRequest, QueryType, VendorRequest


MOBILE_PATTERN = r"^\d{10}$"
CIN_PATTERN = r"^[LU]\d{5}[A-Z]{2}\d{4}[A-Z]{3}\d{6}$"


def _digits(value: Any) -> str:
    return "".join(ch for ch in str(value or "") if ch.isdigit())


class _MobileInput(BaseModel):
    mobile_number: str = Field(pattern=MOBILE_PATTERN)

    @field_validator("mobile_number", mode="before")
    @classmethod
    def _clean_mobile(cls, value: Any) -> str:
        return _digits(value)[-10:]


class PhonePrefillInput(_MobileInput):
    first_name: Optional[str] = None
    consent_ip_address: str = "127.0.0.1"


class VehicleRcInput(BaseModel):
    vehicle_number: str = Field(min_length=4, max_length=15)

    @field_validator("vehicle_number", mode="before")
    @classmethod
    def _clean_vehicle(cls, value: Any) -> str:
        return str(value or "").replace(" ", "").replace("-", "").upper()


class PhoneToCreditInput(_MobileInput):
    name: str = Field(min_length=1, max_length=200)


class CinInput(BaseModel):
    cin: str = Field(pattern=CIN_PATTERN)

    @field_validator("cin", mode="before")
    @classmethod
    def _clean_cin(cls, value: Any) -> str:
        return str(value or "").strip().upper()


class UpiInput(BaseModel):
    upi_id: str = Field(min_length=3, max_length=100)

    @field_validator("upi_id")
    @classmethod
    def _check_handle(cls, value: str) -> str:
        value = value.strip()
        user, _, handle = value.partition("@")
        if not user or not handle:
            raise ValueError("UPI ID must look like name@bank")
        return value


class VoterIdInput(BaseModel):
    epic_number: str = Field(min_length=6, max_length=20)
    state_id: str = ""

    @field_validator("epic_number", mode="before")
    @classmethod
    def _clean_epic(cls, value: Any) -> str:
        return str(value or "").strip().upper()


class RechargeStatusInput(_MobileInput):
    operator_code: str = Field(min_length=1, max_length=10)

    @field_validator("operator_code", mode="before")
    @classmethod
    def _clean_operator(cls, value: Any) -> str:
        return str(value or "").strip().upper()


class LeakSearchInput(BaseModel):
    query: str = Field(min_length=3, max_length=500)


@dataclass(frozen=True)
class LookupSpec:
    key: str
    name: str
    category: str
    source: str
    query_type: QueryType
    adapter: BaseVendorAdapter
    input_model: Type[BaseModel]
    to_vendor: Callable[[Any], Dict[str, Any]]
    describe: Callable[[Any], str]
    summarize: Callable[[Any, Any], str]

    def parse(self, params: Dict[str, Any]) -> BaseModel:
        """Validate and normalise officer input."""
        try:
            return self.input_model.model_validate(params or {})
        except ValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            field_name = ".".join(str(part) for part in first.get("loc", ())) or "input"
            raise InvalidLookupRequest(f"Invalid {field_name}: {first.get('msg', 'invalid value')}") from exc

    def build_request(self, parsed: BaseModel, client_reference: Optional[str] = None) -> VendorRequest:
        return VendorRequest(
            params=self.to_vendor(parsed),
            input_summary=self.describe(parsed),
            client_reference=client_reference,
        )


def _phone_prefill_body(data: PhonePrefillInput) -> Dict[str, Any]:
    now_ms = int(time.time() * 1000)
    body: Dict[str, Any] = {
        "mobileNumber": data.mobile_number,
        "consent": {
            "consentFlag": True,
            "consentTimestamp": now_ms,
            "consentIpAddress": data.consent_ip_address,
            "consentMessageId": f"consent_{uuid.uuid4().hex[:12]}",
        },
    }
    if data.first_name:
        body["firstName"] = data.first_name
    return body


def _prefill_summary(data: PhonePrefillInput, payload: Dict[str, Any]) -> str:
    name = ((payload.get("response") or {}).get("name") or {}).get("fullName")
    return f"Phone details found for {name or 'Unknown'}"


def _vehicle_summary(data: VehicleRcInput, payload: Dict[str, Any]) -> str:
    result = payload.get("result") or {}
    return f"Vehicle found: {result.get('model') or 'Unknown'} - {result.get('owner') or 'Unknown'}"


def _credit_business_summary(data: PhoneToCreditInput, payload: Dict[str, Any]) -> str:
    result = payload.get("result") or {}
    name = result.get("name") if isinstance(result, dict) else None
    return f"Found data for {name or 'Unknown'}"


def _udyam_summary(data: _MobileInput, payload: Dict[str, Any]) -> str:
    result = payload.get("result")
    registration = None
    if isinstance(result, list) and result:
        inner = (result[0] or {}).get("result") or {}
        registration = (inner.get("generalInfo") or {}).get("udyamRegistrationNumber")
    return f"Udyam details found for phone {data.mobile_number}: {registration or 'N/A'}"


def _leak_summary(data: LeakSearchInput, payload: Dict[str, Any]) -> str:
    databases = payload.get("List") or {}
    count = len(databases) if isinstance(databases, dict) else 0
    return f"{count} source(s) matched for '{data.query}'"


def _generic_summary(label: str, subject: Callable[[Any], str]) -> Callable[[Any, Any], str]:
    def _summary(data: Any, payload: Any) -> str:
        return f"{label} for {subject(data)}: Successful"

    return _summary


_SPECS: List[LookupSpec] = [
    LookupSpec(
        key="phone_prefill_v2",
        name="Phone Prefill V2",
        category="Phone Prefill V2",
        source="Signzy",
        query_type="PRO",
        adapter=SignzyAdapter("/api/v3/phonekyc/phone-prefill-v2", success_field="response"),
        input_model=PhonePrefillInput,
        to_vendor=_phone_prefill_body,
        describe=lambda d: f"Phone: {d.mobile_number}",
        summarize=_prefill_summary,
    ),
    LookupSpec(
        key="vehicle_rc_search",
        name="Vehicle RC Search",
        category="Vehicle RC Search",
        source="Signzy",
        query_type="PRO",
        adapter=SignzyAdapter("/api/v3/vehicle/detailedsearches"),
        input_model=VehicleRcInput,
        to_vendor=lambda d: {"vehicleNumber": d.vehicle_number, "splitAddress": True},
        describe=lambda d: f"Vehicle Number: {d.vehicle_number}",
        summarize=_vehicle_summary,
    ),
    LookupSpec(
        key="phone_to_credit_business",
        name="Phone to Credit and Business Details",
        category="Phone to Credit and Business Details",
        source="Signzy",
        query_type="PRO",
        adapter=SignzyAdapter("/api/v3/nca/phoneToCreditAndBusinessDetails"),
        input_model=PhoneToCreditInput,
        to_vendor=lambda d: {"phoneNumber": d.mobile_number, "name": d.name.upper(), "nddSearchType": "entity"},
        describe=lambda d: f"Phone: {d.mobile_number}, Name: {d.name}",
        summarize=_credit_business_summary,
    ),
    LookupSpec(
        key="phone_to_udyam",
        name="Phone to Udyam Details",
        category="Udyam Details Search",
        source="Signzy",
        query_type="PRO",
        adapter=SignzyAdapter("/api/v3/PhoneOrPanToUdyamDetails"),
        input_model=_MobileInput,
        to_vendor=lambda d: {"phone": d.mobile_number},
        describe=lambda d: f"Phone: {d.mobile_number}",
        summarize=_udyam_summary,
    ),
    LookupSpec(
        key="mca_cin_search",
        name="MCA CIN Search",
        category="MCA CIN Search",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiHeaderAdapter("/api/Ekyc/MCACinSearch"),
        input_model=CinInput,
        to_vendor=lambda d: {"CIN": d.cin, "ApiMode": "1"},
        describe=lambda d: f"CIN: {d.cin}, ApiMode: 1",
        summarize=_generic_summary("MCA CIN Search", lambda d: d.cin),
    ),
    LookupSpec(
        key="upi_info",
        name="UPI Info API",
        category="UPI Info Check",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiHeaderAdapter("/api/Ekyc/VPA_Info"),
        input_model=UpiInput,
        to_vendor=lambda d: {"UpiId": d.upi_id, "ApiMode": "1"},
        describe=lambda d: f"UPI ID: {d.upi_id}",
        summarize=_generic_summary("UPI Info Check", lambda d: d.upi_id),
    ),
    LookupSpec(
        key="upi_validation",
        name="UPI Validation API",
        category="UPI Validation",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiHeaderAdapter("/api/Ekyc/UPIValidation"),
        input_model=UpiInput,
        to_vendor=lambda d: {"UpiId": d.upi_id, "ApiMode": "1"},
        describe=lambda d: f"UPI ID: {d.upi_id}",
        summarize=_generic_summary("UPI validation", lambda d: d.upi_id),
    ),
    LookupSpec(
        key="voter_id_verification",
        name="Voter ID 2 Verification",
        category="Voter ID 2 Verification",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiHeaderAdapter("/api/Ekyc/VoterIdVerification2"),
        input_model=VoterIdInput,
        to_vendor=lambda d: {"EPICNUMBER": d.epic_number, "StateId": d.state_id, "ApiMode": "1"},
        describe=lambda d: f"EPIC: {d.epic_number}, State: {d.state_id or 'N/A'}",
        summarize=_generic_summary("Voter ID 2 Verification", lambda d: d.epic_number),
    ),
    LookupSpec(
        key="operator_circle_check",
        name="Operator Circle Check",
        category="Operator Circle Check",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiQueryAdapter("/api/Mobile/OperatorFetchNew"),
        input_model=_MobileInput,
        to_vendor=lambda d: {"Mobileno": d.mobile_number},
        describe=lambda d: f"Mobile: {d.mobile_number}",
        summarize=lambda d, payload: (
            f"Operator: {payload.get('Operator') or 'N/A'}, Circle: {payload.get('Circle') or 'N/A'}"
        ),
    ),
    LookupSpec(
        key="recharge_status_check",
        name="Recharge Status Check",
        category="Recharge Status Check",
        source="PlanAPI",
        query_type="PRO",
        adapter=PlanApiMemberQueryAdapter("/api/Mobile/CheckLastRecharge"),
        input_model=RechargeStatusInput,
        to_vendor=lambda d: {"Operator_Code": d.operator_code, "Mobile_No": d.mobile_number},
        describe=lambda d: f"Mobile: {d.mobile_number}, Operator: {d.operator_code}",
        summarize=lambda d, payload: f"Recharge status retrieved for {d.mobile_number}",
    ),
    LookupSpec(
        key="mobile_to_vehicle_rc",
        name="Mobile to Vehicle RC Deepvue",
        category="Mobile to Vehicle RC",
        source="Deepvue",
        query_type="PRO",
        adapter=DeepvueAdapter("/v1/mobile-intelligence/mobile-to-vehicle-rc"),
        input_model=_MobileInput,
        to_vendor=lambda d: {"mobile_number": d.mobile_number},
        describe=lambda d: f"Mobile Number: {d.mobile_number}",
        summarize=lambda d, payload: f"Mobile to Vehicle RC for {d.mobile_number}: {payload.get('message') or 'Success'}",
    ),
    LookupSpec(
        key="leak_osint_search",
        name="LeakOSINT Search",
        category="Leak Search",
        source="LeakOSINT",
        query_type="OSINT",
        adapter=LeakOsintAdapter(),
        input_model=LeakSearchInput,
        to_vendor=lambda d: {"request": d.query},
        describe=lambda d: f"Query: {d.query}",
        summarize=_leak_summary,
    ),
]

LOOKUP_SPECS: Dict[str, LookupSpec] = {spec.key: spec for spec in _SPECS}


def get_lookup_spec(key: str) -> Optional[LookupSpec]:
    return LOOKUP_SPECS.get(str(key or "").strip().lower())


def list_lookup_specs() -> List[LookupSpec]:
    return list(_SPECS)
