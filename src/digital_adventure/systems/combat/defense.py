"""Who controls whom, and how a suspended attack gets its defense roll."""
from __future__ import annotations

from digital_adventure.models.encounter import CombatParticipant, Encounter, ParticipantType
from digital_adventure.models.requests import GM_ID, DodgeRollRequest, PendingAttack
from digital_adventure.systems.base import EncounterContext
from digital_adventure.systems.combat.npc_resolver import auto_resolve


def partner_tamer(encounter: Encounter, participant: CombatParticipant) -> CombatParticipant | None:
    if participant.type != ParticipantType.DIGIMON or not participant.partner_tamer_id:
        return None
    return encounter.get_participant(participant.partner_tamer_id)


def controller_of(encounter: Encounter, participant: CombatParticipant) -> str:
    """The tamer entity id that answers for this participant, or GM."""
    if participant.is_enemy:
        return GM_ID
    if participant.type == ParticipantType.TAMER:
        return participant.entity_id
    tamer = partner_tamer(encounter, participant)
    if tamer is not None and not tamer.is_enemy:
        return tamer.entity_id
    return GM_ID


def is_player_controlled(encounter: Encounter, participant: CombatParticipant) -> bool:
    return controller_of(encounter, participant) != GM_ID


def controls(encounter: Encounter, controller_id: str, participant: CombatParticipant) -> bool:
    return controller_of(encounter, participant) == controller_id


def tamer_participant_for(encounter: Encounter, tamer_id: str) -> CombatParticipant | None:
    """The non-enemy tamer participant for a tamer entity id."""
    for p in encounter.participants:
        if p.type == ParticipantType.TAMER and p.entity_id == tamer_id and not p.is_enemy:
            return p
    return None


def request_defense(encounter: Encounter, context: EncounterContext, pending: PendingAttack) -> DodgeRollRequest | None:
    """Ask the target's controller to dodge, or roll it for an NPC right away.

    Returns the dodge request when one was created, None when the attack
    was resolved on the spot.
    """
    target = encounter.get_participant(pending.target_id)
    if target is not None and is_player_controlled(encounter, target):
        request = DodgeRollRequest(
            target_tamer_id=controller_of(encounter, target),
            target_participant_id=target.id,
            attack=pending,
        )
        encounter.pending_requests.append(request)
        return request
    auto_resolve(encounter, context, pending)
    return None
