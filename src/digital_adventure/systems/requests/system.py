"""Request/response handling — typed answers to pending requests, plus GM request admin."""
from __future__ import annotations

import logging
from typing import Any

from digital_adventure.engine.errors import Conflict, InvalidCommand, NotFound
from digital_adventure.engine.scheduler import sort_turn_order
from digital_adventure.engine.validators import require_participant
from digital_adventure.models.commands import Respond
from digital_adventure.models.encounter import Encounter, ParticipantType
from digital_adventure.models.requests import (
    RESPONSE_FOR_REQUEST,
    DigimonSelectedResponse,
    DigimonSelectionRequest,
    DodgeRolledResponse,
    DodgeRollRequest,
    InitiativeRolledResponse,
    InitiativeRollRequest,
)
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.resolution import resolve_dodge
from digital_adventure.systems.intercede.system import close_requests
from digital_adventure.systems.turns.system import build_participant, join_encounter

logger = logging.getLogger(__name__)

MIN_INITIATIVE_ROLL = 3
MAX_INITIATIVE_ROLL = 18


class RequestSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "requests"

    @property
    def handled_commands(self) -> set[str]:
        return {"respond", "create_request", "delete_request", "delete_response"}

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        if command.command == "respond":
            self._respond(encounter, command, context)
        elif command.command == "create_request":
            if encounter.get_request(command.request.id) is not None:
                raise Conflict(f"Request {command.request.id} already exists")
            encounter.pending_requests.append(command.request)
        elif command.command == "delete_request":
            if encounter.get_request(command.request_id) is None:
                raise NotFound(f"Request {command.request_id} not found")
            close_requests(encounter, {command.request_id})
        else:
            if not any(r.id == command.response_id for r in encounter.request_responses):
                raise NotFound(f"Response {command.response_id} not found")
            encounter.request_responses = [r for r in encounter.request_responses if r.id != command.response_id]
        return encounter

    def _respond(self, encounter: Encounter, command: Respond, context: EncounterContext) -> None:
        request = encounter.get_request(command.request_id)
        if request is None:
            if command.request_id in encounter.closed_request_ids:
                raise Conflict(f"Request {command.request_id} has already been answered")
            raise NotFound(f"Request {command.request_id} not found")
        if request.target_tamer_id != command.tamer_id:
            raise InvalidCommand("This request is not for you")

        expected = RESPONSE_FOR_REQUEST.get(request.type)
        if expected is None:
            raise InvalidCommand("Intercede offers are answered with claim_intercede or skip_intercede")
        if command.response.type != expected:
            raise InvalidCommand(f"A {request.type} request needs a {expected} response, got {command.response.type}")

        response = command.response.model_copy(update={
            "request_id": request.id,
            "tamer_id": command.tamer_id,
            "participant_id": command.response.participant_id or request.target_participant_id,
        })

        if isinstance(request, InitiativeRollRequest):
            response = self._initiative(encounter, request, response, context)
        elif isinstance(request, DigimonSelectionRequest):
            self._digimon_selected(encounter, request, response, context)
        close_requests(encounter, {request.id})
        encounter.request_responses.append(response)

        if isinstance(request, DodgeRollRequest):
            self._dodge(encounter, request, response, context)
        elif isinstance(request, InitiativeRollRequest):
            if not any(isinstance(r, InitiativeRollRequest) for r in encounter.pending_requests):
                sort_turn_order(encounter)
        logger.debug(f"Response {response.id} closed request {request.id}")

    def _initiative(self, encounter: Encounter, request: InitiativeRollRequest,
                    response: InitiativeRolledResponse, context: EncounterContext) -> InitiativeRolledResponse:
        roll = response.initiative_roll
        if not MIN_INITIATIVE_ROLL <= roll <= MAX_INITIATIVE_ROLL:
            raise InvalidCommand(f"Initiative roll must be between {MIN_INITIATIVE_ROLL} and {MAX_INITIATIVE_ROLL}")
        participant = require_participant(encounter, request.target_participant_id or "")
        stats = context.stats.resolve(participant.type.value, participant.entity_id)
        participant.initiative_roll = roll
        participant.initiative = roll + stats.agility
        return response.model_copy(update={"initiative": participant.initiative})

    def _digimon_selected(self, encounter: Encounter, request: DigimonSelectionRequest,
                          response: DigimonSelectedResponse, context: EncounterContext) -> None:
        if not response.digimon_id:
            raise InvalidCommand("No digimon selected")
        if request.options and response.digimon_id not in request.options:
            raise InvalidCommand(f"{response.digimon_id} is not one of the offered digimon")
        if any(p.entity_id == response.digimon_id for p in encounter.participants):
            return

        participant = build_participant(encounter, context, "digimon", response.digimon_id, is_enemy=False)
        tamer = encounter.get_participant(request.target_participant_id or "")
        if tamer is not None and tamer.type == ParticipantType.TAMER:
            participant.partner_tamer_id = tamer.id
        join_encounter(encounter, participant)

    def _dodge(self, encounter: Encounter, request: DodgeRollRequest,
               response: DodgeRolledResponse, context: EncounterContext) -> None:
        resolve_dodge(
            encounter,
            context,
            request.attack,
            response.dodge_dice_results,
            response.dodge_successes,
            response.dodge_dice_pool,
        )
