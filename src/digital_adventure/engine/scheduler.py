"""Turn and round scheduling over an Encounter. Mutates the encounter it is given."""
from __future__ import annotations

import logging

from digital_adventure.engine.battle_log import append_log
from digital_adventure.engine.errors import InvalidCommand
from digital_adventure.engine.validators import require_phase
from digital_adventure.mechanics.combat_math import determine_turn_order
from digital_adventure.models.encounter import CombatParticipant, Encounter, Phase

logger = logging.getLogger(__name__)

ACTIONS_PER_ROUND = 2


def sort_turn_order(encounter: Encounter) -> None:
    """Rebuild turn order from initiative, keeping the same participant current."""
    current = encounter.current_participant()
    encounter.turn_order = determine_turn_order(
        [(p.id, p.initiative, p.initiative_roll) for p in encounter.participants]
    )
    if current is not None and current.id in encounter.turn_order:
        encounter.current_turn_index = encounter.turn_order.index(current.id)
    else:
        encounter.current_turn_index = 0


def add_to_turn_order(encounter: Encounter, participant: CombatParticipant) -> None:
    encounter.participants.append(participant)
    if encounter.phase == Phase.COMBAT:
        # Late joiners act at the end of the round.
        encounter.turn_order.append(participant.id)
    else:
        sort_turn_order(encounter)


def cancel_requests_involving(encounter: Encounter, participant_id: str) -> list[str]:
    """Close requests addressed to a participant or suspended on an attack it is part of."""
    closing = []
    for request in encounter.pending_requests:
        attack = getattr(request, "attack", None)
        if request.target_participant_id == participant_id or (
            attack is not None and participant_id in (attack.attacker_id, attack.target_id)
        ):
            closing.append(request.id)
    if closing:
        encounter.pending_requests = [r for r in encounter.pending_requests if r.id not in closing]
        encounter.closed_request_ids.extend(closing)
    return closing


def remove_from_encounter(encounter: Encounter, participant_id: str) -> None:
    """Drop a participant from both participants and turn order.

    The participant whose turn it is stays current; if that was the removed
    one, the turn passes to whoever now sits at the same index. Requests
    that can no longer be answered without it are cancelled.
    """
    departing = encounter.get_participant(participant_id)
    cancelled = cancel_requests_involving(encounter, participant_id)
    if cancelled and departing is not None:
        append_log(
            encounter,
            actor_id=participant_id,
            actor_name=encounter.display_name(departing),
            action="Pending requests cancelled",
            result=f"{len(cancelled)} request(s) closed",
        )
        logger.debug(f"Cancelled {cancelled} for departing {participant_id}")
    encounter.participants = [p for p in encounter.participants if p.id != participant_id]
    if participant_id not in encounter.turn_order:
        return
    removed_index = encounter.turn_order.index(participant_id)
    encounter.turn_order = [pid for pid in encounter.turn_order if pid != participant_id]
    if removed_index < encounter.current_turn_index:
        encounter.current_turn_index -= 1
    if encounter.current_turn_index >= len(encounter.turn_order):
        encounter.current_turn_index = 0
    if encounter.phase == Phase.COMBAT:
        current = encounter.current_participant()
        if current is not None:
            current.is_active = True


def start_combat(encounter: Encounter) -> None:
    require_phase(encounter, Phase.SETUP, Phase.INITIATIVE)
    if not encounter.participants:
        raise InvalidCommand("Cannot start combat without participants")
    sort_turn_order(encounter)
    encounter.current_turn_index = 0
    encounter.phase = Phase.COMBAT
    encounter.round = 1
    for p in encounter.participants:
        p.actions_remaining.simple = ACTIONS_PER_ROUND
        p.is_active = False
        p.has_acted = False
    first = encounter.current_participant()
    if first is not None:
        first.is_active = True
    append_log(
        encounter,
        actor_id=None,
        actor_name="GM",
        action="Combat started",
        result=f"Turn order: {', '.join(encounter.name_of(pid) for pid in encounter.turn_order)}",
    )
    logger.info(f"Encounter {encounter.id} entered combat with {len(encounter.turn_order)} participants")


def next_turn(encounter: Encounter) -> None:
    require_phase(encounter, Phase.COMBAT)
    if not encounter.turn_order:
        raise InvalidCommand("Turn order is empty")

    leaving = encounter.current_participant()
    if leaving is not None:
        leaving.is_active = False
        leaving.has_acted = True

    encounter.current_turn_index = (encounter.current_turn_index + 1) % len(encounter.turn_order)
    if encounter.current_turn_index == 0:
        begin_new_round(encounter)

    arriving = encounter.current_participant()
    if arriving is not None:
        arriving.is_active = True


def begin_new_round(encounter: Encounter) -> None:
    """Round-boundary housekeeping: actions, per-turn flags, effect and hazard decay."""
    encounter.round += 1
    for p in encounter.participants:
        p.actions_remaining.simple = max(0, ACTIONS_PER_ROUND - p.intercept_penalty)
        p.intercept_penalty = 0
        p.has_acted = False
        p.has_attempted_digivolve = False
        p.has_directed_this_turn = False
        decay_effects(p)
    decrement_hazard_durations(encounter)
    logger.debug(f"Encounter {encounter.id} begins round {encounter.round}")


def decay_effects(participant: CombatParticipant) -> None:
    for effect in participant.active_effects:
        effect.duration -= 1
    participant.active_effects = [e for e in participant.active_effects if e.duration > 0]


def decrement_hazard_durations(encounter: Encounter) -> None:
    """Timed hazards tick down once per round; hazards without a duration are permanent."""
    for hazard in encounter.hazards:
        if hazard.duration is not None:
            hazard.duration -= 1
    encounter.hazards = [h for h in encounter.hazards if h.duration is None or h.duration > 0]


def end_combat(encounter: Encounter) -> None:
    if encounter.phase == Phase.ENDED:
        raise InvalidCommand("Encounter has already ended")
    encounter.phase = Phase.ENDED
    for p in encounter.participants:
        p.is_active = False
    append_log(encounter, actor_id=None, actor_name="GM", action="Combat ended", result=f"After {encounter.round} round(s)")
