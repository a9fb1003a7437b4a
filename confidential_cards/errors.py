"""Failure taxonomy for the card protocol.

Every failure a caller can observe is one of the classes below. Each carries
the operation it aborted and a human-readable reason, so presentation code
can show ``"transfer failed: Caller is not the token owner"`` without
inspecting collaborator internals.
"""

from typing import Optional


class ProtocolError(Exception):
    """Base class for all classified protocol failures."""

    def __init__(self, reason: str, operation: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.operation = operation

    @property
    def classification(self) -> str:
        return type(self).__name__

    def for_operation(self, operation: str) -> "ProtocolError":
        """Return a copy of this error attributed to ``operation``."""
        return type(self)(self.reason, operation=operation)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation} failed: {self.reason}"
        return self.reason


class ValidationFailed(ProtocolError):
    """Malformed identity, address or argument; raised before any crypto or network work."""


class EncodingFailed(ProtocolError):
    """The encryption collaborator rejected a value or could not bind the batch."""


class SubmissionRejected(ProtocolError):
    """The ledger refused the request before executing it."""


class ExecutionReverted(ProtocolError):
    """The ledger executed the request but the operation's own precondition failed."""


class SubmissionTimedOut(ProtocolError):
    """No trustworthy answer from the ledger within the bounded wait; the outcome is unknown."""


class ConfirmationTimedOut(ProtocolError):
    """Finality was not observed within the polling window."""
