"""Attack resolution — the one damage formula every defense path feeds into.

Whether the dodge was rolled by a player, rolled by the server, or forced to
zero by an intercede, the result goes through ``apply_attack`` and then
``handle_knockout``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from digital_adventure.engine.battle_log import append_log, describe_dice
from digital_adventure.engine.errors import NotFound
from digital_adventure.engine.scheduler import remove_from_encounter
from digital_adventure.mechanics.combat_math import (
    DamageBreakdown,
    armor_piercing_value,
    compute_damage,
    effect_duration,
    should_apply_effect,
)
from digital_adventure.mechanics.effects import effect_kind
from digital_adventure.mechanics.tags import TagKind
from digital_adventure.mechanics.wounds import accumulate_combat_monster, apply_damage, is_knocked_out
from digital_adventure.models.encounter import ActiveEffect, CombatParticipant, Encounter
from digital_adventure.models.requests import PendingAttack
from digital_adventure.systems.base import EncounterContext

logger = logging.getLogger(__name__)

DIRECTED = "Directed"


@dataclass
class AttackOutcome:
    breakdown: DamageBreakdown
    applied_effect: str | None = None


def consume_directed(participant: CombatParticipant) -> int:
    """Remove a one-shot Directed buff and return its bonus (0 if none)."""
    effect = participant.remove_effect(DIRECTED)
    if effect is None:
        return 0
    return effect.value or 0


def apply_attack(
    encounter: Encounter,
    context: EncounterContext,
    pending: PendingAttack,
    defender: CombatParticipant,
    dodge_successes: int,
    penalize_defender: bool = True,
) -> AttackOutcome:
    """Compute damage for one attack and apply it to the defender.

    Handles Combat Monster on both sides, effect application and the
    defender's dodge penalty. Knockouts are left to handle_knockout.
    """
    attacker = encounter.get_participant(pending.attacker_id)
    if attacker is None:
        raise NotFound(f"Attacker {pending.attacker_id} is no longer in the encounter")
    attacker_stats = context.stats.resolve(attacker.type.value, attacker.entity_id)
    defender_stats = context.stats.resolve(defender.type.value, defender.entity_id)

    attack = context.stats.attack_for(attacker_stats, pending.attack_id)
    base_damage = attacker_stats.damage + attack.tag_rank(TagKind.WEAPON) + pending.bolster_damage_bonus
    armor_piercing = armor_piercing_value(attack.tag_rank(TagKind.ARMOR_PIERCING))

    # Combat Monster spends its bank on the bearer's next hit.
    hit = pending.accuracy_successes - dodge_successes >= 0
    if hit and attacker_stats.has_combat_monster:
        base_damage += attacker.combat_monster_bonus
        attacker.combat_monster_bonus = 0

    breakdown = compute_damage(
        base_damage=base_damage,
        accuracy_successes=pending.accuracy_successes,
        dodge_successes=dodge_successes,
        target_armor=defender_stats.armor,
        armor_piercing=armor_piercing,
    )
    outcome = AttackOutcome(breakdown=breakdown)

    if penalize_defender:
        defender.dodge_penalty += 1

    if not breakdown.hit:
        logger.debug(f"{pending.attacker_name} missed {defender.name} (net {breakdown.net_successes})")
        return outcome

    defender.current_wounds = apply_damage(defender.current_wounds, breakdown.final_damage, defender.max_wounds)
    if defender_stats.has_combat_monster:
        defender.combat_monster_bonus = accumulate_combat_monster(
            defender.combat_monster_bonus, breakdown.final_damage, defender_stats.health
        )

    if attack.effect and should_apply_effect(attack.type.value, breakdown.final_damage):
        defender.active_effects.append(ActiveEffect(
            name=attack.effect,
            kind=effect_kind(attack.effect),
            duration=effect_duration(breakdown.net_successes, pending.bolster_bit_cpu_bonus),
            source="Attack",
        ))
        outcome.applied_effect = attack.effect

    logger.debug(
        f"{pending.attacker_name} hit {defender.name} for {breakdown.final_damage} "
        f"({defender.current_wounds}/{defender.max_wounds})"
    )
    return outcome


def handle_knockout(encounter: Encounter, context: EncounterContext, defender: CombatParticipant) -> None:
    """Auto-devolve or remove a knocked-out defender. Player characters stay in, maxed out."""
    if not is_knocked_out(defender.current_wounds, defender.max_wounds):
        return

    if defender.wounds_history:
        previous = defender.wounds_history.pop()
        old_name = defender.name
        defender.entity_id = previous.entity_id
        defender.max_wounds = previous.max_wounds
        defender.current_wounds = previous.wounds
        defender.stage_index = previous.stage_index
        defender.name = context.stats.get_digimon(previous.entity_id).name
        append_log(
            encounter,
            actor_id=defender.id,
            actor_name=old_name,
            action=f"was knocked out and devolved to {defender.name}!",
            result=f"Wounds restored to {previous.wounds}",
            effects=["Auto-Devolve"],
        )
        logger.info(f"{old_name} auto-devolved to {defender.name} in encounter {encounter.id}")
        return

    if defender.is_enemy:
        name = encounter.display_name(defender)
        remove_from_encounter(encounter, defender.id)
        append_log(
            encounter,
            actor_id=defender.id,
            actor_name=name,
            action="was defeated and removed from the encounter!",
            result="Defeated",
            effects=["Defeated"],
        )
        logger.info(f"{name} defeated in encounter {encounter.id}")


def resolve_dodge(
    encounter: Encounter,
    context: EncounterContext,
    pending: PendingAttack,
    dodge_dice: list[int],
    dodge_successes: int,
    dodge_pool: int | None = None,
) -> AttackOutcome:
    """Finish an attack once the target's dodge is known.

    Shared by the player dodge response and the NPC auto-resolver.
    """
    defender = encounter.get_participant(pending.target_id)
    if defender is None:
        raise NotFound(f"Target {pending.target_id} is no longer in the encounter")
    consume_directed(defender)
    defender_name = encounter.display_name(defender)

    outcome = apply_attack(encounter, context, pending, defender, dodge_successes)
    b = outcome.breakdown
    pool = dodge_pool if dodge_pool is not None else len(dodge_dice)
    faces = ",".join(str(d) for d in dodge_dice)
    effects = ["Dodge"]
    if outcome.applied_effect:
        effects.append(f"Applied: {outcome.applied_effect}")
    append_log(
        encounter,
        actor_id=defender.id,
        actor_name=defender_name,
        action="Dodge",
        result=(
            f"{pool}d6 => [{faces}] = {dodge_successes} successes - "
            f"Net: {b.net_successes} - {'HIT!' if b.hit else 'MISS!'}"
        ),
        damage=b.final_damage,
        effects=effects,
        breakdown=b,
    )
    if b.hit:
        handle_knockout(encounter, context, defender)
    return outcome


def log_accuracy(encounter: Encounter, attacker: CombatParticipant, target: CombatParticipant,
                 attack_name: str, dice: list[int], successes: int, bolster_type: str | None = None) -> None:
    effects = ["Attack", "Accuracy Roll"]
    if bolster_type:
        effects.append(f"Bolster: {bolster_type}")
    append_log(
        encounter,
        actor_id=attacker.id,
        actor_name=encounter.display_name(attacker),
        action=f"Attack: {attack_name}",
        target=encounter.display_name(target),
        result=describe_dice(dice, successes),
        effects=effects,
    )
