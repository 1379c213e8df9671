"""Error taxonomy shared by the core and its adapters."""


class MitigateError(Exception):
    """Base class for recoverable remediation errors."""

    pass


class PermissionDenied(MitigateError):
    """Raised when the capability oracle refuses an action."""

    def __init__(self, capability, message: str | None = None):
        self.capability = capability
        name = getattr(capability, "value", capability)
        super().__init__(message or f"Permission denied: {name}")


class NotFound(MitigateError):
    """Raised when an operation references an unknown task or recommendation."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(MitigateError):
    """Raised when input is missing or outside the closed value sets."""

    pass


class InvalidTransition(ValidationError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move task from {current.value} to {target.value}")


class PersistenceError(MitigateError):
    """Raised when the persistence store cannot load or save."""

    pass


class ActionFailed(MitigateError):
    """Raised when an approved remote action could not be carried out."""

    pass
