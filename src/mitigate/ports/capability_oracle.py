"""Capability oracle interface."""

from typing import Protocol

from mitigate.core.capabilities import Capability


class CapabilityOracle(Protocol):
    """Answers whether the current actor may perform an action."""

    def has_capability(self, capability: Capability) -> bool:
        """Return True if granted. Must not mutate state."""
        ...
