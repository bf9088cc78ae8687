"""Encounter setup and flow — participants, initiative, stances, hazards and phases."""
from __future__ import annotations

import logging
from typing import Any

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import Conflict, InvalidCommand, NotFound
from digital_adventure.engine.scheduler import (
    add_to_turn_order,
    end_combat,
    next_turn,
    remove_from_encounter,
    sort_turn_order,
    start_combat,
)
from digital_adventure.engine.validators import require_participant, require_phase
from digital_adventure.mechanics.dice import initiative_roll
from digital_adventure.models.encounter import CombatParticipant, Encounter, Hazard, ParticipantType, Phase
from digital_adventure.models.requests import GM_ID, InitiativeRollRequest
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.defense import controller_of

logger = logging.getLogger(__name__)


def build_participant(
    encounter: Encounter,
    context: EncounterContext,
    participant_type: str,
    entity_id: str,
    is_enemy: bool | None = None,
) -> CombatParticipant:
    """A fresh participant for a stat-store entity, linked to its partner if present."""
    stats = context.stats.resolve(participant_type, entity_id)
    participant = CombatParticipant(
        type=ParticipantType(participant_type),
        entity_id=entity_id,
        name=stats.name,
        is_enemy=stats.is_enemy if is_enemy is None else is_enemy,
        current_wounds=0,
        max_wounds=stats.max_wounds,
    )

    if participant.type == ParticipantType.DIGIMON:
        if stats.partner_id and not participant.is_enemy:
            for p in encounter.participants:
                if p.type == ParticipantType.TAMER and p.entity_id == stats.partner_id:
                    participant.partner_tamer_id = p.id
                    break
        line = context.stats.find_evolution_line_for(entity_id)
        if line is not None:
            participant.evolution_line_id = line.id
            for index, stage in enumerate(line.chain):
                if stage.digimon_id == entity_id:
                    participant.stage_index = index
                    break
    elif not participant.is_enemy:
        # Digimon that joined before their tamer get linked now.
        for p in encounter.participants:
            if p.type != ParticipantType.DIGIMON or p.partner_tamer_id or p.is_enemy:
                continue
            if context.stats.resolve("digimon", p.entity_id).partner_id == entity_id:
                p.partner_tamer_id = participant.id
    return participant


def join_encounter(encounter: Encounter, participant: CombatParticipant) -> None:
    if not participant.is_enemy:
        for p in encounter.participants:
            if p.entity_id == participant.entity_id and not p.is_enemy:
                raise Conflict(f"{participant.name} is already in the encounter")
    add_to_turn_order(encounter, participant)
    append_log(
        encounter,
        actor_id=participant.id,
        actor_name=encounter.display_name(participant),
        action="Joined the encounter",
        result=f"Wounds 0/{participant.max_wounds}",
    )


def close_participant_requests(encounter: Encounter, participant_id: str, request_type: str | None = None) -> None:
    closing = [
        r.id for r in encounter.pending_requests
        if r.target_participant_id == participant_id and (request_type is None or r.type == request_type)
    ]
    if not closing:
        return
    encounter.pending_requests = [r for r in encounter.pending_requests if r.id not in closing]
    encounter.closed_request_ids.extend(closing)


def _require_hazard(encounter: Encounter, hazard_id: str) -> Hazard:
    for hazard in encounter.hazards:
        if hazard.id == hazard_id:
            return hazard
    raise NotFound(f"Hazard {hazard_id} not found")


class TurnSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "turns"

    @property
    def handled_commands(self) -> set[str]:
        return {
            "add_participant", "remove_participant", "begin_initiative", "set_initiative",
            "start_combat", "next_turn", "end_combat", "set_stance", "reset_dodge_penalty",
            "add_hazard", "remove_hazard", "update_hazard",
        }

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        handler = getattr(self, f"_{command.command}")
        handler(encounter, command, context)
        return encounter

    # -- Participants --

    def _add_participant(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        participant = build_participant(
            encounter, context, command.participant_type, command.entity_id, command.is_enemy
        )
        if command.initiative is not None:
            participant.initiative = command.initiative
        if command.initiative_roll is not None:
            participant.initiative_roll = command.initiative_roll
        join_encounter(encounter, participant)
        logger.info(f"Added {participant.name} ({participant.id}) to encounter {encounter.id}")

    def _remove_participant(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        participant = require_participant(encounter, command.participant_id)
        name = encounter.display_name(participant)
        remove_from_encounter(encounter, participant.id)
        append_log(encounter, actor_id=participant.id, actor_name=name, action="Left the encounter")

    # -- Initiative --

    def _begin_initiative(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        require_phase(encounter, Phase.SETUP)
        if not encounter.participants:
            raise InvalidCommand("Cannot roll initiative without participants")
        encounter.phase = Phase.INITIATIVE

        for p in encounter.participants:
            controller = controller_of(encounter, p)
            if p.type == ParticipantType.TAMER and controller != GM_ID:
                encounter.pending_requests.append(InitiativeRollRequest(
                    target_tamer_id=controller,
                    target_participant_id=p.id,
                ))
                continue
            stats = context.stats.resolve(p.type.value, p.entity_id)
            result = initiative_roll(stats.agility)
            p.initiative = result.total
            p.initiative_roll = sum(result.individual_rolls)
            append_log(
                encounter,
                actor_id=p.id,
                actor_name=encounter.display_name(p),
                action="Initiative",
                result=f"3d6 => [{','.join(str(d) for d in result.individual_rolls)}] + {stats.agility} = {result.total}",
            )
        sort_turn_order(encounter)

    def _set_initiative(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        participant = require_participant(encounter, command.participant_id)
        participant.initiative = command.initiative
        participant.initiative_roll = command.initiative_roll
        close_participant_requests(encounter, participant.id, "initiative-roll")
        sort_turn_order(encounter)

    # -- Phases --

    def _start_combat(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        for p in encounter.participants:
            close_participant_requests(encounter, p.id, "initiative-roll")
        start_combat(encounter)

    def _next_turn(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        next_turn(encounter)

    def _end_combat(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        end_combat(encounter)
        logger.info(f"Encounter {encounter.id} ended after {encounter.round} round(s)")

    # -- Participant state --

    def _set_stance(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        participant = require_participant(encounter, command.participant_id)
        previous = participant.current_stance
        participant.current_stance = command.stance
        append_log(
            encounter,
            actor_id=participant.id,
            actor_name=encounter.display_name(participant),
            action="Stance",
            result=f"{previous.value} -> {command.stance.value}",
        )

    def _reset_dodge_penalty(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        participant = require_participant(encounter, command.participant_id)
        participant.dodge_penalty = 0
        append_log(
            encounter,
            actor_id=None,
            actor_name=GM_ID,
            action="Reset dodge penalty",
            target=encounter.display_name(participant),
        )

    # -- Hazards --

    def _add_hazard(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        if command.duration is not None and command.duration <= 0:
            raise InvalidCommand("Hazard duration must be positive")
        hazard = Hazard(
            name=command.name,
            description=command.description,
            effect=command.effect,
            duration=command.duration,
            affected_area=command.affected_area,
        )
        encounter.hazards.append(hazard)
        duration = f"{hazard.duration} round(s)" if hazard.duration is not None else "permanent"
        append_log(encounter, actor_id=None, actor_name=GM_ID, action=f"Hazard: {hazard.name}", result=duration)

    def _remove_hazard(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        hazard = _require_hazard(encounter, command.hazard_id)
        encounter.hazards = [h for h in encounter.hazards if h.id != hazard.id]
        append_log(encounter, actor_id=None, actor_name=GM_ID, action=f"Hazard cleared: {hazard.name}")

    def _update_hazard(self, encounter: Encounter, command: Any, context: EncounterContext) -> None:
        hazard = _require_hazard(encounter, command.hazard_id)
        for field_name in ("name", "description", "effect", "duration", "affected_area"):
            value = getattr(command, field_name)
            if value is not None:
                setattr(hazard, field_name, value)
