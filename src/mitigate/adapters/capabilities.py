"""Capability oracle adapters."""

from mitigate.core.capabilities import Capability

ROLE_LEVELS = {
    "viewer": 1,
    "operator": 2,
    "admin": 3,
}

# Minimum role level per capability
CAPABILITY_LEVELS = {
    Capability.CREATE_TASK: 2,
    Capability.EDIT_TASK: 2,
    Capability.DELETE_TASK: 2,
    Capability.COMPLETE_TASK: 2,
    Capability.ACCEPT_RECOMMENDATION: 2,
    Capability.DISMISS_RECOMMENDATION: 2,
    Capability.EXPORT_DATA: 2,
    Capability.APPROVE_ACTION: 3,
    Capability.REJECT_ACTION: 3,
    Capability.VIEW_PENDING_APPROVALS: 3,
}


class AllowAllCapabilities:
    """Grants everything. Used when no authorization layer is configured."""

    def has_capability(self, capability: Capability) -> bool:
        return True


class StaticCapabilities:
    """Grants a fixed set of capabilities."""

    def __init__(self, granted=()):
        self.granted = frozenset(Capability(c) for c in granted)

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.granted


class RoleCapabilities(StaticCapabilities):
    """
    Grants capabilities by role level.

    Implements CapabilityOracle protocol. Unknown roles get viewer access.
    """

    def __init__(self, role: str):
        role = (role or "").strip().lower()
        self.role = role if role in ROLE_LEVELS else "viewer"
        level = ROLE_LEVELS[self.role]
        super().__init__(c for c, required in CAPABILITY_LEVELS.items() if level >= required)
