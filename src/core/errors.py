"""Error taxonomy for the dispatch core.

Faults below the Dispatcher (tokenizing, normalizing, tree evaluation) are
caught inside the core; these types only tell the caller what kind of fault
was observed.
"""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base class for all switchboard errors."""


class UsageError(SwitchboardError):
    """Wrong argument count for a command; shown to the user as help text."""


class PermissionDenied(SwitchboardError):
    """Sender is not in the configured allow-list."""

    def __init__(self, sender_id: str) -> None:
        super().__init__(f"user not allowed: {sender_id}")
        self.sender_id = sender_id


class EvaluationFault(SwitchboardError):
    """A compiled expression failed at runtime or returned a non-boolean."""


class ExpressionError(SwitchboardError):
    """Expression text could not be compiled."""


class CallbackFault(SwitchboardError):
    """A rule callback could not complete its work."""


class IngestionFault(SwitchboardError):
    """A declarative rule file (or the whole rule tree) could not be loaded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
