"""NPC auto-resolver — rolls the defender's dodge server-side when no human is asked."""
from __future__ import annotations

import logging

from digital_adventure.engine.errors import NotFound
from digital_adventure.mechanics.combat_math import dodge_pool
from digital_adventure.mechanics.dice import roll_pool
from digital_adventure.models.encounter import Encounter
from digital_adventure.models.requests import PendingAttack
from digital_adventure.systems.base import EncounterContext
from digital_adventure.systems.combat.resolution import DIRECTED, AttackOutcome, resolve_dodge

logger = logging.getLogger(__name__)


def defender_dodge_pool(encounter: Encounter, context: EncounterContext, participant_id: str) -> int:
    """Dodge dice for a participant: stat, stance, penalty floor of 1, then Directed."""
    defender = encounter.get_participant(participant_id)
    if defender is None:
        raise NotFound(f"Target {participant_id} is no longer in the encounter")
    stats = context.stats.resolve(defender.type.value, defender.entity_id)
    directed = defender.find_effect(DIRECTED)
    return dodge_pool(
        stats.dodge,
        defender.current_stance.value,
        defender.dodge_penalty,
        directed.value or 0 if directed else 0,
    )


def auto_resolve(encounter: Encounter, context: EncounterContext, pending: PendingAttack) -> AttackOutcome:
    pool = defender_dodge_pool(encounter, context, pending.target_id)
    dodge = roll_pool(pool)
    logger.debug(f"Server dodge for {pending.target_name}: {dodge.individual_rolls} ({dodge.successes} successes)")
    return resolve_dodge(encounter, context, pending, dodge.individual_rolls, dodge.successes, pool)
