"""Models package."""

from .admin_user import AdminUser
from .capability import Capability
from .credit_transaction import CreditTransaction
from .officer import Officer
from .query_log import QueryLog
from .rate_plan import PlanCapability, RatePlan
from .registration import OfficerRegistration
