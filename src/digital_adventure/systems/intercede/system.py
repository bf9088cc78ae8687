"""Intercede protocol — fan-out offers, first claim wins, skips collapse to a dodge."""
from __future__ import annotations

import logging
import uuid
from typing import Any

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import Conflict, InsufficientActions, InvalidCommand, NotFound
from digital_adventure.engine.validators import require_participant, require_phase, spend_actions, turn_has_gone
from digital_adventure.models.commands import ClaimIntercede, SkipIntercede
from digital_adventure.models.encounter import Encounter, ParticipantType, Phase
from digital_adventure.models.requests import GM_ID, IntercedeOfferRequest, PendingAttack
from digital_adventure.systems.base import EncounterContext, EncounterSystem
from digital_adventure.systems.combat.defense import controls, request_defense, tamer_participant_for
from digital_adventure.systems.combat.resolution import apply_attack, handle_knockout

logger = logging.getLogger(__name__)

MAX_INTERCEPT_PENALTY = 2


def eligible_protectors(encounter: Encounter, target_id: str) -> list[str]:
    """Controllers who get an intercede offer for an attack on ``target_id``.

    Every tamer with a partner digimon in the encounter is offered unless it
    opted out of protecting this target. The GM is always offered unless it
    opted out with "never intercede" for this target.
    """
    if encounter.get_participant(target_id) is None:
        return []

    eligible: list[str] = []
    for p in encounter.participants:
        if p.type != ParticipantType.TAMER:
            continue
        if not encounter.partner_digimon(p.id):
            continue
        if target_id in p.intercede_opt_outs:
            continue
        eligible.append(p.entity_id)

    if target_id not in encounter.gm_intercede_opt_outs:
        eligible.append(GM_ID)
    return eligible


def open_intercede_group(encounter: Encounter, pending: PendingAttack, controllers: list[str]) -> str:
    """Emit one offer per controller, all sharing a fresh group id."""
    group_id = f"intercede-{uuid.uuid4().hex[:12]}"
    for controller in controllers:
        encounter.pending_requests.append(IntercedeOfferRequest(
            target_tamer_id=controller,
            target_participant_id=pending.target_id,
            intercede_group_id=group_id,
            original_target_id=pending.target_id,
            attack=pending,
        ))
    logger.debug(f"Opened intercede group {group_id} for {len(controllers)} controller(s)")
    return group_id


def group_requests(encounter: Encounter, group_id: str) -> list[IntercedeOfferRequest]:
    return [
        r for r in encounter.pending_requests
        if isinstance(r, IntercedeOfferRequest) and r.intercede_group_id == group_id
    ]


def close_requests(encounter: Encounter, request_ids: set[str]) -> None:
    encounter.pending_requests = [r for r in encounter.pending_requests if r.id not in request_ids]
    encounter.closed_request_ids.extend(sorted(request_ids))


def _find_offer(encounter: Encounter, request_id: str) -> IntercedeOfferRequest:
    request = encounter.get_request(request_id)
    if request is None:
        if request_id in encounter.closed_request_ids:
            raise Conflict("This intercede has already been resolved")
        raise NotFound(f"Request {request_id} not found")
    if not isinstance(request, IntercedeOfferRequest):
        raise InvalidCommand(f"Request {request_id} is not an intercede offer")
    return request


class IntercedeSystem(EncounterSystem):
    @property
    def system_id(self) -> str:
        return "intercede"

    @property
    def handled_commands(self) -> set[str]:
        return {"claim_intercede", "skip_intercede"}

    def resolve(self, encounter: Encounter, command: Any, context: EncounterContext) -> Encounter:
        require_phase(encounter, Phase.COMBAT)
        if command.command == "claim_intercede":
            self._claim(encounter, command, context)
        else:
            self._skip(encounter, command, context)
        return encounter

    def _claim(self, encounter: Encounter, command: ClaimIntercede, context: EncounterContext) -> None:
        offer = _find_offer(encounter, command.request_id)
        siblings = group_requests(encounter, offer.intercede_group_id)
        if not siblings:
            raise Conflict("This intercede has already been resolved")
        if offer.target_tamer_id != command.tamer_id:
            raise InvalidCommand("This request is not for you")

        pending = offer.attack
        interceptor = require_participant(encounter, command.interceptor_id, "Interceptor")
        if interceptor.id == pending.target_id:
            raise InvalidCommand("Interceptor cannot be the same as the target")
        if not controls(encounter, command.tamer_id, interceptor):
            raise InvalidCommand(f"{interceptor.name} is not yours to command")
        if command.tamer_id == GM_ID and command.interceptor_id in encounter.gm_character_opt_outs.get(pending.target_id, []):
            raise InvalidCommand(f"{interceptor.name} has been opted out of protecting this target")

        if not turn_has_gone(encounter, interceptor):
            spend_actions(interceptor, 1)
        else:
            if interceptor.intercept_penalty >= MAX_INTERCEPT_PENALTY:
                raise InsufficientActions(1, 0)
            interceptor.intercept_penalty += 1

        outcome = apply_attack(encounter, context, pending, interceptor, dodge_successes=0, penalize_defender=False)
        original_target = encounter.get_participant(pending.target_id)
        if original_target is not None:
            original_target.dodge_penalty += 1

        close_requests(encounter, {r.id for r in siblings})

        b = outcome.breakdown
        effects = ["Intercede"]
        if outcome.applied_effect:
            effects.append(f"Applied: {outcome.applied_effect}")
        append_log(
            encounter,
            actor_id=interceptor.id,
            actor_name=encounter.display_name(interceptor),
            action=f"Interceded for {pending.target_name}!",
            result=f"Takes hit with 0 dodge - {b.final_damage} damage dealt",
            damage=b.final_damage,
            effects=effects,
            breakdown=b,
        )
        handle_knockout(encounter, context, interceptor)
        logger.info(f"{interceptor.name} interceded for {pending.target_name} in encounter {encounter.id}")

    def _skip(self, encounter: Encounter, command: SkipIntercede, context: EncounterContext) -> None:
        offer = _find_offer(encounter, command.request_id)
        if offer.target_tamer_id != command.tamer_id:
            raise InvalidCommand("This request is not for you")
        target_id = offer.attack.target_id

        if command.character_opt_outs is not None:
            if command.tamer_id != GM_ID:
                raise InvalidCommand("Only the GM can opt out individual characters")
            # The GM keeps the offer and may still intercede with someone else.
            encounter.gm_character_opt_outs[target_id] = list(command.character_opt_outs)
            return

        if command.opt_out:
            if command.tamer_id == GM_ID:
                if target_id not in encounter.gm_intercede_opt_outs:
                    encounter.gm_intercede_opt_outs.append(target_id)
            else:
                tamer = tamer_participant_for(encounter, command.tamer_id)
                if tamer is not None and target_id not in tamer.intercede_opt_outs:
                    tamer.intercede_opt_outs.append(target_id)

        close_requests(encounter, {offer.id})
        if not group_requests(encounter, offer.intercede_group_id):
            logger.debug(f"Intercede group {offer.intercede_group_id} collapsed; requesting defense")
            request_defense(encounter, context, offer.attack)
