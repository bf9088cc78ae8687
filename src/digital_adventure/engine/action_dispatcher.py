"""Action dispatcher — load, route, compute, compare-and-swap persist."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from digital_adventure.engine.errors import Conflict, EngineError, InvalidCommand, NotFound
from digital_adventure.engine.stat_resolver import StatResolver
from digital_adventure.engine.system_registry import SystemRegistry
from digital_adventure.models.commands import Command
from digital_adventure.models.encounter import Encounter, Phase
from digital_adventure.systems.base import EncounterContext

logger = logging.getLogger(__name__)

_COMMAND_ADAPTER: TypeAdapter = TypeAdapter(Command)


def parse_command(raw: Any) -> Any:
    """Validate a dict (or pass through a model) into a typed command."""
    if not isinstance(raw, dict):
        return raw
    try:
        return _COMMAND_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise InvalidCommand(f"Malformed command: {e.errors()[0].get('msg', e)}") from e


class ActionDispatcher:
    def __init__(self, registry: SystemRegistry, repos: dict[str, Any]):
        self.registry = registry
        self.repos = repos
        self.stats = StatResolver(repos)

    def context(self) -> EncounterContext:
        return EncounterContext(stats=self.stats, repos=self.repos)

    def create_encounter(self, name: str, description: str = "") -> Encounter:
        encounter = Encounter(name=name, description=description)
        self.repos["encounter"].save(encounter.model_dump(mode="json"))
        logger.info(f"Created encounter {encounter.id} ({name})")
        return encounter

    def load(self, encounter_id: str) -> Encounter:
        row = self.repos["encounter"].get(encounter_id)
        if row is None:
            raise NotFound(f"Encounter {encounter_id} not found")
        return Encounter.model_validate(row)

    def apply(self, encounter: Encounter, command: Any) -> Encounter:
        """Compute the next encounter state without persisting it.

        The caller's encounter is never mutated; on error nothing changes.
        """
        command = parse_command(command)
        if encounter.phase == Phase.ENDED and command.command != "end_combat":
            raise InvalidCommand("Encounter has ended")
        system = self.registry.find_system(command)
        if system is None:
            raise InvalidCommand(f"No system handles command {command.command}")

        working = encounter.model_copy(deep=True)
        result = system.resolve(working, command, self.context())
        result.version = encounter.version + 1
        result.updated_at = datetime.now(timezone.utc).isoformat()
        return result

    def dispatch(self, encounter_id: str, command: Any) -> Encounter:
        command = parse_command(command)
        current = self.load(encounter_id)
        try:
            updated = self.apply(current, command)
        except EngineError as e:
            logger.warning(f"Rejected {command.command} on encounter {encounter_id}: {e.reason}")
            raise

        if not self.repos["encounter"].save_if_unchanged(updated.model_dump(mode="json"), current.version):
            logger.warning(f"Lost write race on encounter {encounter_id} at version {current.version}")
            raise Conflict("Encounter was modified concurrently; refresh and retry")
        logger.info(f"Applied {command.command} to encounter {encounter_id} (version {updated.version})")

        self._sync_evolution_lines(updated)
        return updated

    def _sync_evolution_lines(self, encounter: Encounter) -> None:
        """Keep partnered digimon's evolution lines on the stage they fight at."""
        lines = self.repos["evolution_line"]
        for p in encounter.participants:
            if not p.evolution_line_id or not p.partner_tamer_id or p.stage_index is None:
                continue
            row = lines.get(p.evolution_line_id)
            if row is not None and row.get("current_stage_index") != p.stage_index:
                lines.update_field(p.evolution_line_id, "current_stage_index", p.stage_index)
