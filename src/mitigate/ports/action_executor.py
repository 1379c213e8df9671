"""Remote action executor interface."""

from typing import Protocol

from mitigate.core.approvals import RemoteAction


class ActionExecutor(Protocol):
    """Carries out an approved directory write action."""

    def execute(self, action: RemoteAction, data: dict) -> None:
        """Run the action. Raises ActionFailed if the directory refuses it."""
        ...
