"""Capability names understood by the capability oracle."""

from enum import Enum


class Capability(Enum):
    """Named permissions checked before every mutation."""

    CREATE_TASK = "create:task"
    EDIT_TASK = "edit:task"
    DELETE_TASK = "delete:task"
    COMPLETE_TASK = "complete:task"
    ACCEPT_RECOMMENDATION = "accept:recommendation"
    DISMISS_RECOMMENDATION = "dismiss:recommendation"
    EXPORT_DATA = "export:data"
    APPROVE_ACTION = "approve:action"
    REJECT_ACTION = "reject:action"
    VIEW_PENDING_APPROVALS = "view:pendingApprovals"
