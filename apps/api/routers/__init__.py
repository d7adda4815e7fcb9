"""Routers package."""

from . import (
    health,
    auth,
    lookups,
    credits,
    queries,
    officers,
    rate_plans,
    capabilities,
    registrations,
)
