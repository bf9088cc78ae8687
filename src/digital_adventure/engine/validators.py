"""Action economy checks. Validates before any state is touched."""
from __future__ import annotations

from digital_adventure.engine.errors import InsufficientActions, InvalidCommand, NotFound
from digital_adventure.models.encounter import CombatParticipant, Encounter, ParticipantType, Phase


def require_participant(encounter: Encounter, participant_id: str, label: str = "Participant") -> CombatParticipant:
    p = encounter.get_participant(participant_id)
    if p is None:
        raise NotFound(f"{label} {participant_id} not found")
    return p


def require_phase(encounter: Encounter, *phases: Phase) -> None:
    if encounter.phase not in phases:
        allowed = ", ".join(ph.value for ph in phases)
        raise InvalidCommand(f"Encounter is in {encounter.phase.value} phase (requires {allowed})")


def can_act(encounter: Encounter, participant: CombatParticipant) -> tuple[bool, str]:
    """Validate whether a participant may act right now.

    A participant acts on its own turn; a partnered digimon also acts on its
    tamer's turn.
    """
    if encounter.phase != Phase.COMBAT:
        return False, "Combat has not started."
    current = encounter.current_participant()
    if current is None:
        return False, "No participant has the turn."
    if current.id == participant.id:
        return True, ""
    if (
        participant.type == ParticipantType.DIGIMON
        and current.type == ParticipantType.TAMER
        and participant.partner_tamer_id == current.id
    ):
        return True, ""
    return False, f"It is not {participant.name or participant.id}'s turn."


def require_can_act(encounter: Encounter, participant: CombatParticipant) -> None:
    ok, reason = can_act(encounter, participant)
    if not ok:
        raise InvalidCommand(reason)


def require_own_turn(encounter: Encounter, participant: CombatParticipant) -> None:
    """Stricter than can_act: only the participant whose turn it is."""
    require_phase(encounter, Phase.COMBAT)
    current = encounter.current_participant()
    if current is None or current.id != participant.id:
        raise InvalidCommand(f"It is not {participant.name or participant.id}'s turn.")


def spend_actions(participant: CombatParticipant, cost: int) -> None:
    remaining = participant.actions_remaining.simple
    if remaining < cost:
        raise InsufficientActions(cost, remaining)
    participant.actions_remaining.simple = remaining - cost


def turn_has_gone(encounter: Encounter, participant: CombatParticipant) -> bool:
    """Whether this participant (or the tamer it acts with) already had its turn this round."""
    acting_id = participant.id
    if participant.type == ParticipantType.DIGIMON and participant.partner_tamer_id:
        acting_id = participant.partner_tamer_id
    if acting_id not in encounter.turn_order:
        return False
    return encounter.turn_order.index(acting_id) < encounter.current_turn_index
