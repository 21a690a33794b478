"""Domain-level error hierarchy.

All errors raised by the operation core inherit from OperationError so
that callers can catch a single base class.  Errors raised by actions
(business errors) and by collaborator clients are never wrapped; they
reach the caller of ``execute()`` unchanged.
"""


class OperationError(Exception):
    """Base class for all operation errors."""


class ConfigurationError(OperationError):
    """An operation or executor was wired incorrectly.

    Raised synchronously at construction time, and when an action asks
    for a service that was never configured.
    """


class ProtocolError(OperationError):
    """The operation lifecycle was misused (programmer error)."""


class InvalidTransitionError(ProtocolError):
    """An illegal state transition was attempted."""

    def __init__(self, current: object, target: object) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition: {current} -> {target}")


class CollaboratorError(OperationError):
    """A collaborator service broke its contract with the operation."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service}: {message}")
