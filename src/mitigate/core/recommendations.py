"""Rule-based recommendations derived from an environment snapshot.

Pure functions - no I/O. Recommendation ids come from the rule that produced
them, so the same condition yields the same id on every refresh.
"""

from dataclasses import dataclass
from typing import Callable

from .tasks import Category, Priority


@dataclass
class UserStats:
    total: int = 0
    disabled: int = 0
    inactive: int = 0
    guests: int = 0


@dataclass
class SecurityStats:
    mfa_enabled: float = 0  # percent of users
    risky_users_count: int = 0


@dataclass
class LicenseStats:
    unassigned: int = 0
    inactive: int = 0
    disabled: int = 0
    potential_savings: float = 0


@dataclass
class Snapshot:
    """Read-only view of the environment. Missing sections mean no data."""

    users: UserStats | None = None
    security: SecurityStats | None = None
    licenses: LicenseStats | None = None

    @property
    def has_data(self) -> bool:
        return any(s is not None for s in (self.users, self.security, self.licenses))

    @classmethod
    def from_dict(cls, data: dict | None) -> "Snapshot":
        """Create a Snapshot from the dashboard's camelCase data structure."""
        data = data or {}
        users = data.get("users")
        security = data.get("security")
        licenses = data.get("licenses")
        return cls(
            users=UserStats(
                total=_number(users, "total"),
                disabled=_number(users, "disabled"),
                inactive=_number(users, "inactive"),
                guests=_number(users, "guests"),
            )
            if isinstance(users, dict)
            else None,
            security=SecurityStats(
                mfa_enabled=_number(security, "mfaEnabled"),
                risky_users_count=_number(security, "riskyUsersCount"),
            )
            if isinstance(security, dict)
            else None,
            licenses=LicenseStats(
                unassigned=_number(licenses, "unassigned"),
                inactive=_number(licenses, "inactive"),
                disabled=_number(licenses, "disabled"),
                potential_savings=_number(licenses, "potentialSavings"),
            )
            if isinstance(licenses, dict)
            else None,
        )


def _number(section: dict | None, key: str, default=0):
    if not isinstance(section, dict):
        return default
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


@dataclass(frozen=True)
class Recommendation:
    """An ephemeral suggestion. Becomes a Task only when accepted."""

    id: str
    title: str
    description: str
    priority: Priority
    category: Category
    action: str

    @property
    def playbook_id(self) -> str | None:
        return RECOMMENDATION_PLAYBOOKS.get(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "category": self.category.value,
            "action": self.action,
            "playbookId": self.playbook_id,
        }


Rule = Callable[[Snapshot], Recommendation | None]

# Playbook that walks through each recommendation
RECOMMENDATION_PLAYBOOKS = {
    "mfa-enrollment": "mfa-enrollment",
    "inactive-users": "inactive-users",
    "inactive-signins": "inactive-users",
    "guest-review": "guest-access-review",
    "guest-audit": "guest-access-review",
    "unused-licenses": "license-optimization",
    "inactive-licenses": "license-optimization",
    "disabled-licenses": "license-optimization",
    "conditional-access": "conditional-access",
    "access-review": "guest-access-review",
    "license-optimization": "license-optimization",
    "mfa-review": "mfa-enrollment",
    "risky-users": "privileged-access",
}


def _savings_note(licenses: LicenseStats) -> str:
    if licenses.potential_savings <= 0:
        return ""
    return f" Potential savings: ${licenses.potential_savings:,.0f}/month."


def disabled_users_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.users or snapshot.users.disabled <= 0:
        return None
    count = snapshot.users.disabled
    return Recommendation(
        id="inactive-users",
        title=f"Review {count} Disabled Users",
        description=(
            f"You have {count} disabled user accounts. Consider reviewing these "
            "for potential deletion to maintain a clean directory."
        ),
        priority=Priority.HIGH if count > 10 else Priority.MEDIUM,
        category=Category.USERS,
        action="Create review task",
    )


def inactive_signins_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.users or snapshot.users.inactive <= 0:
        return None
    count = snapshot.users.inactive
    return Recommendation(
        id="inactive-signins",
        title=f"{count} Users with No Recent Sign-ins",
        description=(
            f"{count} users haven't signed in recently. Review these accounts for "
            "potential deactivation or license reassignment."
        ),
        priority=Priority.HIGH if count > 20 else Priority.MEDIUM,
        category=Category.USERS,
        action="Review inactive users",
    )


def guest_ratio_rule(snapshot: Snapshot) -> Recommendation | None:
    users = snapshot.users
    if not users or users.total <= 0 or users.guests <= users.total * 0.3:
        return None
    percent = int(users.guests / users.total * 100 + 0.5)
    return Recommendation(
        id="guest-review",
        title="High Guest User Ratio",
        description=(
            f"Guest users make up {percent}% of your directory. Schedule a "
            "quarterly access review for external users."
        ),
        priority=Priority.MEDIUM,
        category=Category.ACCESS,
        action="Schedule review",
    )


def mfa_coverage_rule(snapshot: Snapshot) -> Recommendation | None:
    security = snapshot.security
    if not security or security.mfa_enabled >= 100:
        return None
    coverage = security.mfa_enabled
    if coverage < 50:
        priority = Priority.CRITICAL
    elif coverage < 80:
        priority = Priority.HIGH
    else:
        priority = Priority.MEDIUM
    return Recommendation(
        id="mfa-enrollment",
        title="Increase MFA Coverage",
        description=(
            f"Only {coverage:g}% of users have MFA enabled. Enable MFA for all "
            "users to prevent unauthorized access."
        ),
        priority=priority,
        category=Category.SECURITY,
        action="Create MFA task",
    )


def risky_users_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.security or snapshot.security.risky_users_count <= 0:
        return None
    count = snapshot.security.risky_users_count
    return Recommendation(
        id="risky-users",
        title=f"{count} Risky Users Detected",
        description=(
            f"{count} users have been flagged with risky sign-ins. "
            "Investigate and remediate immediately."
        ),
        priority=Priority.CRITICAL,
        category=Category.SECURITY,
        action="Investigate now",
    )


def unassigned_licenses_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.licenses or snapshot.licenses.unassigned <= 5:
        return None
    count = snapshot.licenses.unassigned
    return Recommendation(
        id="unused-licenses",
        title=f"{count} Unused Licenses",
        description=(
            f"You have {count} unassigned licenses. Consider reassigning or "
            "reducing subscription to save costs."
            f"{_savings_note(snapshot.licenses)}"
        ),
        priority=Priority.MEDIUM,
        category=Category.LICENSES,
        action="Review licenses",
    )


def inactive_licenses_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.licenses or snapshot.licenses.inactive <= 0:
        return None
    count = snapshot.licenses.inactive
    return Recommendation(
        id="inactive-licenses",
        title=f"{count} Licenses on Inactive Users",
        description=(
            f"{count} licenses are assigned to inactive users. Reassign these "
            "licenses to save costs."
            f"{_savings_note(snapshot.licenses)}"
        ),
        priority=Priority.HIGH if count > 10 else Priority.MEDIUM,
        category=Category.LICENSES,
        action="Review inactive licenses",
    )


def disabled_licenses_rule(snapshot: Snapshot) -> Recommendation | None:
    if not snapshot.licenses or snapshot.licenses.disabled <= 0:
        return None
    count = snapshot.licenses.disabled
    return Recommendation(
        id="disabled-licenses",
        title=f"{count} Licenses on Disabled Users",
        description=(
            f"{count} licenses are assigned to disabled accounts. "
            "Remove these licenses immediately."
        ),
        priority=Priority.HIGH,
        category=Category.LICENSES,
        action="Remove licenses",
    )


RULES: tuple[Rule, ...] = (
    disabled_users_rule,
    inactive_signins_rule,
    guest_ratio_rule,
    mfa_coverage_rule,
    risky_users_rule,
    unassigned_licenses_rule,
    inactive_licenses_rule,
    disabled_licenses_rule,
)

DEFAULT_RECOMMENDATIONS: tuple[Recommendation, ...] = (
    Recommendation(
        id="access-review",
        title="Schedule Quarterly Access Review",
        description=(
            "Regular access reviews help ensure users have appropriate permissions "
            "and guest access is still needed."
        ),
        priority=Priority.MEDIUM,
        category=Category.COMPLIANCE,
        action="Create task",
    ),
    Recommendation(
        id="conditional-access",
        title="Review Conditional Access Policies",
        description=(
            "Ensure your Conditional Access policies are up-to-date and aligned "
            "with security best practices."
        ),
        priority=Priority.HIGH,
        category=Category.SECURITY,
        action="Create task",
    ),
    Recommendation(
        id="license-optimization",
        title="Monthly License Audit",
        description=(
            "Set up a monthly review of license assignments to optimize costs "
            "and ensure compliance."
        ),
        priority=Priority.LOW,
        category=Category.LICENSES,
        action="Schedule review",
    ),
    Recommendation(
        id="mfa-review",
        title="Verify MFA Enrollment",
        description=(
            "Ensure all users have MFA enabled. Check for any users who may have "
            "bypassed MFA requirements."
        ),
        priority=Priority.HIGH,
        category=Category.SECURITY,
        action="Create task",
    ),
    Recommendation(
        id="guest-audit",
        title="Audit Guest User Access",
        description=(
            "Review external guest users and their access rights. Remove any "
            "guests who no longer need access."
        ),
        priority=Priority.MEDIUM,
        category=Category.ACCESS,
        action="Schedule review",
    ),
)


def sort_by_priority(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Critical first. Equal priorities keep rule order."""
    return sorted(recommendations, key=lambda r: r.priority.rank)


def generate_recommendations(
    snapshot: Snapshot | None,
    rules: tuple[Rule, ...] = RULES,
) -> list[Recommendation]:
    """
    Evaluate every rule against the snapshot.

    Falls back to the generic set when no rule fires, so callers never get an
    empty list.
    """
    found = []
    if snapshot is not None and snapshot.has_data:
        for rule in rules:
            recommendation = rule(snapshot)
            if recommendation is not None:
                found.append(recommendation)
    if not found:
        found = list(DEFAULT_RECOMMENDATIONS)
    return sort_by_priority(found)
