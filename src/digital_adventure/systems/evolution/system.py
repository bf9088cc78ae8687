"""Digivolution — evolve and devolve along an evolution line, with wound history."""
from __future__ import annotations

import logging
from typing import Any

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import Conflict, DomainRefusal, InvalidCommand
from digital_adventure.engine.validators import require_can_act, require_participant, require_phase, spend_actions
from digital_adventure.mechanics.evolution import is_devolution, is_evolution
from digital_adventure.models.commands import Digivolve, DigivolveFail
from digital_adventure.models.encounter import CombatParticipant, Encounter, ParticipantType, Phase, WoundsHistoryEntry
from digital_adventure.models.entity import EvolutionLine
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.defense import partner_tamer

logger = logging.getLogger(__name__)

DIGIVOLVE_COST = 1


def action_payer(encounter: Encounter, digimon: CombatParticipant) -> CombatParticipant:
    """The partner tamer pays for digivolution; an unpartnered digimon pays itself."""
    return partner_tamer(encounter, digimon) or digimon


class EvolutionSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "evolution"

    @property
    def handled_commands(self) -> set[str]:
        return {"digivolve", "digivolve_fail"}

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        require_phase(encounter, Phase.COMBAT)
        digimon = require_participant(encounter, command.participant_id, "Digimon")
        if digimon.type != ParticipantType.DIGIMON:
            raise InvalidCommand("Only digimon can digivolve")
        if not digimon.evolution_line_id or digimon.stage_index is None:
            raise InvalidCommand(f"{digimon.name} has no evolution line")
        require_can_act(encounter, digimon)
        line = context.stats.get_evolution_line(digimon.evolution_line_id)

        if command.command == "digivolve_fail":
            self._fail(encounter, digimon, line, command)
        else:
            self._digivolve(encounter, digimon, line, command, context)
        return encounter

    def _digivolve(self, encounter: Encounter, digimon: CombatParticipant, line: EvolutionLine,
                   command: Digivolve, context: EncounterContext) -> None:
        chain = [s.model_dump() for s in line.chain]
        current, target = digimon.stage_index, command.target_stage_index
        evolving = is_evolution(chain, current, target)
        if not evolving and not is_devolution(chain, current, target):
            raise InvalidCommand(f"Stage {target} is not adjacent to stage {current} in {line.name}")

        stage = line.chain[target]
        if not stage.is_unlocked:
            raise DomainRefusal(f"{stage.species or stage.stage} is locked")
        if not stage.digimon_id:
            raise DomainRefusal(f"No digimon is assigned to {stage.species or stage.stage}")
        if evolving and digimon.has_attempted_digivolve:
            raise Conflict(f"{digimon.name} has already attempted to digivolve this turn")

        spend_actions(action_payer(encounter, digimon), DIGIVOLVE_COST)
        old_name = encounter.display_name(digimon)

        if evolving:
            digimon.wounds_history.append(WoundsHistoryEntry(
                entity_id=digimon.entity_id,
                max_wounds=digimon.max_wounds,
                wounds=digimon.current_wounds,
                stage_index=digimon.stage_index,
            ))
            stats = context.stats.resolve("digimon", stage.digimon_id)
            digimon.entity_id = stage.digimon_id
            digimon.max_wounds = stats.max_wounds
            digimon.current_wounds = 0
            digimon.name = stats.name
            digimon.has_attempted_digivolve = True
            action, tag = f"digivolved to {stats.name}!", "Digivolve"
        else:
            previous = digimon.wounds_history[-1] if digimon.wounds_history else None
            if previous is not None and previous.stage_index == target:
                digimon.wounds_history.pop()
                digimon.entity_id = previous.entity_id
                digimon.max_wounds = previous.max_wounds
                digimon.current_wounds = previous.wounds
            else:
                # Joined at a higher stage, so there is no history to restore.
                stats = context.stats.resolve("digimon", stage.digimon_id)
                digimon.entity_id = stage.digimon_id
                digimon.max_wounds = stats.max_wounds
                digimon.current_wounds = min(digimon.current_wounds, stats.max_wounds)
            digimon.name = context.stats.get_digimon(digimon.entity_id).name
            action, tag = f"devolved to {digimon.name}", "Devolve"

        digimon.stage_index = target
        append_log(
            encounter,
            actor_id=digimon.id,
            actor_name=old_name,
            action=action,
            result=f"Wounds {digimon.current_wounds}/{digimon.max_wounds}",
            effects=[tag],
        )
        logger.info(f"{old_name} {action} in encounter {encounter.id}")

    def _fail(self, encounter: Encounter, digimon: CombatParticipant, line: EvolutionLine,
              command: DigivolveFail) -> None:
        chain = [s.model_dump() for s in line.chain]
        if not is_evolution(chain, digimon.stage_index, command.target_stage_index):
            raise InvalidCommand(f"Stage {command.target_stage_index} does not evolve from stage {digimon.stage_index}")
        if digimon.has_attempted_digivolve:
            raise Conflict(f"{digimon.name} has already attempted to digivolve this turn")

        spend_actions(action_payer(encounter, digimon), DIGIVOLVE_COST)
        digimon.has_attempted_digivolve = True
        stage = line.chain[command.target_stage_index]
        append_log(
            encounter,
            actor_id=digimon.id,
            actor_name=encounter.display_name(digimon),
            action=f"failed to digivolve to {stage.species or stage.stage}",
            result=f"Willpower check failed (rolled {command.willpower_roll} vs DC {command.dc})",
            effects=["Digivolve Failed"],
        )
