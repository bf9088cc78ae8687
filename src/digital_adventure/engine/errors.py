"""Engine error taxonomy. A raised error means no state was changed."""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every rejected encounter command."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidCommand(EngineError):
    """Malformed input, wrong turn, or an invalid target."""


class InsufficientActions(InvalidCommand):
    def __init__(self, required: int, remaining: int) -> None:
        super().__init__(
            f"Not enough actions (requires {required} simple action(s), {remaining} remaining)"
        )
        self.required = required
        self.remaining = remaining


class NotFound(EngineError):
    """Unknown encounter, participant, request, response or entity."""


class Conflict(EngineError):
    """The command raced another write or repeats a one-shot action.

    Clients should refresh the encounter before retrying.
    """


class DomainRefusal(EngineError):
    """The rules forbid the action (locked stage, cooldown, and so on)."""
