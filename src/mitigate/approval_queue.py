"""Approval queue - high-risk directory actions wait here for a second admin.

Requests are persisted under their own key. Approving runs the action through
the executor first and only then removes the request, so a failed action stays
pending and can be retried.
"""

import logging
from datetime import datetime
from typing import Callable

from .adapters.action_executor import LoggingActionExecutor
from .adapters.file_audit_log import NullAuditLog
from .core.approvals import PendingAction, RemoteAction, new_pending_id, validate_data
from .core.capabilities import Capability
from .core.errors import ActionFailed, NotFound, PermissionDenied, PersistenceError, ValidationError
from .core.tasks import parse_enum
from .ports import ActionExecutor, AuditLog, CapabilityOracle, PersistenceStore

logger = logging.getLogger(__name__)

APPROVALS_KEY = "remediation-pending-approvals"


class ApprovalQueue:
    """Pending remote actions and the approve/reject decisions on them."""

    def __init__(
        self,
        oracle: CapabilityOracle,
        store: PersistenceStore,
        actor: str = "unknown",
        audit_log: AuditLog | None = None,
        executor: ActionExecutor | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        self_approval_allowed: bool = False,
        key: str = APPROVALS_KEY,
    ):
        self.oracle = oracle
        self.store = store
        self.actor = actor
        self.audit_log = audit_log or NullAuditLog()
        self.executor = executor or LoggingActionExecutor()
        self.self_approval_allowed = self_approval_allowed
        self.key = key
        self._clock = clock or datetime.now
        self._new_id = id_factory or new_pending_id
        self._pending: list[PendingAction] = self._load()

    def pending(self) -> list[PendingAction]:
        """The queue, oldest request first."""
        self._require(Capability.VIEW_PENDING_APPROVALS)
        return list(self._pending)

    def submit(self, action: RemoteAction | str, data: dict, description: str = "") -> PendingAction:
        """Queue an action instead of running it. Any actor may request."""
        action = parse_enum(RemoteAction, action, "action")
        item = PendingAction(
            id=self._new_id(),
            action=action,
            description=(description or "").strip() or action.value,
            requested_by=self.actor,
            requested_at=self._clock(),
            data=validate_data(action, data),
        )
        self._commit(
            self._pending + [item],
            "approval:submitted",
            {"pendingId": item.id, "action": action.value, "description": item.description},
        )
        return item

    def approve(self, pending_id: str) -> PendingAction:
        """Run a pending action and drop it from the queue."""
        self._require(Capability.APPROVE_ACTION)
        item = self._find(pending_id)
        if not self.self_approval_allowed and item.requested_by == self.actor:
            logger.warning(f"{self.actor} tried to approve own request {pending_id}")
            raise PermissionDenied(
                Capability.APPROVE_ACTION,
                "You cannot approve your own action. Another admin must approve.",
            )

        try:
            self.executor.execute(item.action, item.data)
        except ActionFailed as e:
            logger.error(f"Approved action {item.action.value} failed: {e}")
            raise

        self._commit(
            [p for p in self._pending if p.id != pending_id],
            "approval:approved",
            {
                "pendingId": pending_id,
                "action": item.action.value,
                "approvedBy": self.actor,
                "requestedBy": item.requested_by,
            },
        )
        return item

    def reject(self, pending_id: str, reason: str = "") -> PendingAction:
        """Cancel a pending action without running it."""
        self._require(Capability.REJECT_ACTION)
        item = self._find(pending_id)
        self._commit(
            [p for p in self._pending if p.id != pending_id],
            "approval:rejected",
            {
                "pendingId": pending_id,
                "action": item.action.value,
                "rejectedBy": self.actor,
                "requestedBy": item.requested_by,
                "reason": reason,
            },
        )
        return item

    def _find(self, pending_id: str) -> PendingAction:
        for item in self._pending:
            if item.id == pending_id:
                return item
        raise NotFound("Pending action", pending_id)

    def _require(self, capability: Capability) -> None:
        if not self.oracle.has_capability(capability):
            logger.warning(f"{self.actor} denied {capability.value}")
            raise PermissionDenied(capability)

    def _load(self) -> list[PendingAction]:
        pending = []
        for record in self.store.load(self.key) or []:
            if not isinstance(record, dict):
                logger.warning(f"Skipping malformed approval record: {record!r}")
                continue
            try:
                pending.append(PendingAction.from_record(record))
            except ValidationError as e:
                logger.warning(f"Skipping approval record {record.get('id')!r}: {e}")
        return pending

    def _commit(self, pending: list[PendingAction], action: str, details: dict) -> None:
        try:
            self.store.save(self.key, [p.to_record() for p in pending])
        except PersistenceError:
            logger.error(f"Failed to persist {action}; keeping previous queue")
            raise
        except OSError as e:
            logger.error(f"Failed to persist {action}; keeping previous queue")
            raise PersistenceError(str(e)) from e
        self._pending = pending
        self.audit_log.record(action, details)
        logger.info(f"{self.actor} {action}: {details}")
