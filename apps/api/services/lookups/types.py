"""Lookup workflow contracts: grants, vendor results and the error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional


QueryType = Literal["PRO", "OSINT"]

NOT_ENTITLED_REASONS = ("no_plan", "not_enabled", "inactive_key")


class LookupWorkflowError(RuntimeError):
    """Base class for errors raised by the credit-metered lookup workflow."""

    code = "lookup_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotEntitled(LookupWorkflowError):
    """Officer's plan does not grant the capability."""

    code = "not_entitled"

    def __init__(self, reason: str, message: Optional[str] = None) -> None:
        if reason not in NOT_ENTITLED_REASONS:
            raise ValueError(f"Unknown entitlement reason: {reason}")
        super().__init__(message or _NOT_ENTITLED_MESSAGES[reason])
        self.reason = reason


_NOT_ENTITLED_MESSAGES = {
    "no_plan": "No rate plan is assigned to this officer. Please contact admin.",
    "not_enabled": "This lookup is not enabled on your plan. Please contact admin.",
    "inactive_key": "This lookup is currently unavailable. Please contact admin.",
}


class InsufficientCredits(LookupWorkflowError):
    """Balance is below the grant's cost."""

    code = "insufficient_credits"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient credits. Required: {required}, available: {available}.")
        self.required = required
        self.available = available


class VendorFailure(LookupWorkflowError):
    """Vendor returned non-2xx, a malformed body, or did not answer in time."""

    code = "vendor_failure"

    def __init__(self, message: str, query_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.query_id = query_id


class ResolutionError(LookupWorkflowError):
    """Entitlement could not be read from storage."""

    code = "resolution_error"


class LedgerWriteError(LookupWorkflowError):
    """Vendor succeeded but the balance and ledger could not be committed."""

    code = "ledger_write_failed"

    def __init__(self, message: str, query_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.query_id = query_id


class InvalidLookupRequest(ValueError):
    """Capability-specific input failed validation."""


@dataclass(frozen=True)
class CapabilityGrant:
    """Permission, price and credential for one officer to invoke one capability once."""

    officer_id: str
    capability_id: str
    capability_key: str
    capability_name: str
    service_provider: Optional[str]
    cost: int
    credential: str


@dataclass(frozen=True)
class VendorRequest:
    """Normalized capability input handed to a vendor adapter."""

    params: Dict[str, Any]
    input_summary: str
    client_reference: Optional[str] = None


@dataclass(frozen=True)
class VendorResult:
    ok: bool
    payload: Any = None
    message: Optional[str] = None
    http_status: Optional[int] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, payload: Any, http_status: Optional[int] = None) -> "VendorResult":
        return cls(ok=True, payload=payload, http_status=http_status)

    @classmethod
    def failure(
        cls,
        message: str,
        payload: Any = None,
        http_status: Optional[int] = None,
    ) -> "VendorResult":
        return cls(ok=False, payload=payload, message=message, http_status=http_status)
