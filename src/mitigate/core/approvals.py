"""Pending remote actions awaiting a second admin's approval."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .errors import ValidationError
from .tasks import parse_enum, parse_timestamp


class RemoteAction(Enum):
    """Directory write actions that must be approved before they run."""

    USER_DISABLE = "user:disable"
    USER_ENABLE = "user:enable"
    USER_REVOKE_SESSIONS = "user:revokeSessions"
    LICENSE_REMOVE = "license:remove"
    LICENSE_ASSIGN = "license:assign"
    BULK_USER_DISABLE = "bulk:userDisable"
    BULK_LICENSE_REMOVE = "bulk:licenseRemove"


# Payload keys each action needs
REQUIRED_DATA = {
    RemoteAction.USER_DISABLE: ("userId",),
    RemoteAction.USER_ENABLE: ("userId",),
    RemoteAction.USER_REVOKE_SESSIONS: ("userId",),
    RemoteAction.LICENSE_REMOVE: ("userId", "skuId"),
    RemoteAction.LICENSE_ASSIGN: ("userId", "skuId"),
    RemoteAction.BULK_USER_DISABLE: ("userIds",),
    RemoteAction.BULK_LICENSE_REMOVE: ("assignments",),
}


def validate_data(action: RemoteAction, data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError(f"Action data for {action.value} must be an object")
    missing = [key for key in REQUIRED_DATA[action] if not data.get(key)]
    if missing:
        raise ValidationError(f"Action {action.value} is missing: {', '.join(missing)}")
    return dict(data)


def new_pending_id() -> str:
    return f"pending-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class PendingAction:
    """A requested remote action. Leaves the queue when approved or rejected."""

    id: str
    action: RemoteAction
    description: str
    requested_by: str
    requested_at: datetime
    data: dict = field(default_factory=dict)

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "action": self.action.value,
            "data": self.data,
            "description": self.description,
            "requestedBy": self.requested_by,
            "requestedAt": self.requested_at.isoformat(),
            "status": "pending",
        }

    @classmethod
    def from_record(cls, data: dict) -> "PendingAction":
        """Rebuild from a persisted record. Raises ValidationError."""
        if not data.get("id"):
            raise ValidationError("Pending action record has no id")
        action = parse_enum(RemoteAction, data.get("action"), "action")
        return cls(
            id=data["id"],
            action=action,
            description=data.get("description") or action.value,
            requested_by=data.get("requestedBy") or "unknown",
            requested_at=parse_timestamp(data.get("requestedAt")) or datetime.fromtimestamp(0),
            data=validate_data(action, data.get("data")),
        )
