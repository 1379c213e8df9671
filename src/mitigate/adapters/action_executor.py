"""Action executor adapters."""

import logging

from mitigate.core.approvals import RemoteAction

logger = logging.getLogger(__name__)


class LoggingActionExecutor:
    """
    Records approved actions without touching a directory.

    Implements ActionExecutor protocol. Used until a directory client is wired in.
    """

    def __init__(self):
        self.executed: list[tuple[RemoteAction, dict]] = []

    def execute(self, action: RemoteAction, data: dict) -> None:
        logger.info(f"Approved action {action.value}: {data}")
        self.executed.append((action, data))
