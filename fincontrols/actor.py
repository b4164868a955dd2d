from dataclasses import dataclass
from typing import Optional

# Roles allowed to resolve any pending approval request in their tenant
APPROVER_ROLES = frozenset({"super_admin", "admin", "financial_manager", "accountant"})

# Roles allowed to lock and unlock accounting periods
PERIOD_ADMIN_ROLES = frozenset({"super_admin", "admin", "financial_manager"})

# Roles allowed to maintain approval workflow tiers
WORKFLOW_ADMIN_ROLES = frozenset({"super_admin", "admin"})

# Roles allowed to run payroll calculations
PAYROLL_ROLES = frozenset(
    {"super_admin", "admin", "financial_manager", "accountant", "hr_manager"}
)


@dataclass(frozen=True)
class ActorContext:
    """The authenticated caller, resolved once per request and passed explicitly."""

    user_id: str
    tenant_id: str
    role: str
    email: Optional[str] = None

    def has_role(self, roles) -> bool:
        return self.role in roles
