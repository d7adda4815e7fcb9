"""Credit-metered external lookups: registry, adapters and contracts."""

from services.lookups.registry import LookupSpec, get_lookup_spec, list_lookup_specs
from services.lookups.types import (
    CapabilityGrant,
    InsufficientCredits,
    InvalidLookupRequest,
    LedgerWriteError,
    LookupWorkflowError,
    NotEntitled,
    ResolutionError,
    VendorFailure,
    VendorRequest,
    VendorResult,
)

__all__ = [
    "CapabilityGrant",
    "InsufficientCredits",
    "InvalidLookupRequest",
    "LedgerWriteError",
    "LookupSpec",
    "LookupWorkflowError",
    "NotEntitled",
    "ResolutionError",
    "VendorFailure",
    "VendorRequest",
    "VendorResult",
    "get_lookup_spec",
    "list_lookup_specs",
]
