"""
Exception types for the jupygate plugin.

Recoverable gateway conditions are expressed as a FailureKind carried on a
GatewayError; the resolvers decide what to do with each kind. Only
UserCancelled and the fatal errors ever reach the picker.
"""
import enum
from typing import Any, Optional


class FailureKind(enum.Enum):
    """Classification of a failed gateway call, computed once at the client boundary."""

    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    STRUCTURED = "structured"
    TRANSPORT = "transport"


class JupyGateError(Exception):
    """Base class for all jupygate errors."""


class UserCancelled(JupyGateError):
    """The user dismissed a choice or prompt. Not a failure."""


class GatewayError(JupyGateError):
    """
    A gateway call failed.

    Attributes:
        kind: The FailureKind assigned at the client boundary
        status: HTTP status code, if a response was received
        payload: Response text or the underlying error message
    """

    def __init__(self, message: str, kind: FailureKind, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.payload = payload

    def __repr__(self):
        return f"GatewayError({str(self)!r}, kind={self.kind.value}, status={self.status})"


class GatewayUnreachable(JupyGateError):
    """The gateway timed out. Already reported to the user; not retried."""


class FatalGatewayError(JupyGateError):
    """A gateway failure that ends the current resolution."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class InvalidTransition(JupyGateError):
    """The picker was asked to move between two states that are not connected."""
