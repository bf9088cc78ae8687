"""Base interface for pluggable encounter systems."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from digital_adventure.engine.stat_resolver import StatResolver
    from digital_adventure.models.encounter import Encounter


class EncounterContext:
    """Collaborators a system may consult while resolving a command."""

    def __init__(
        self,
        stats: StatResolver,
        repos: dict[str, Any] | None = None,
    ):
        self.stats = stats
        self.repos = repos or {}


class EncounterSystem(ABC):
    """Base class for all encounter command handlers.

    ``resolve`` mutates the encounter it is handed. The dispatcher always
    hands it a private deep copy, so a raised EngineError discards every
    change made so far.
    """

    @property
    @abstractmethod
    def system_id(self) -> str: ...

    @property
    @abstractmethod
    def handled_commands(self) -> set[str]: ...

    def can_handle(self, command: Any) -> bool:
        return command.command in self.handled_commands

    @abstractmethod
    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter: ...
