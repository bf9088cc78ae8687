"""Combat math — pure functions, no I/O."""
from __future__ import annotations

import math
from dataclasses import dataclass

BOLSTER_DAMAGE_BONUS = 2
BOLSTER_BIT_CPU_BONUS = 1
DEFAULT_DODGE_POOL = 3


@dataclass
class DamageBreakdown:
    base_damage: int
    net_successes: int
    target_armor: int
    armor_piercing: int
    effective_armor: int
    final_damage: int
    hit: bool


def apply_stance_to_dodge(pool: int, stance: str) -> int:
    """Defensive stance boosts dodge by half, offensive halves it (rounded up)."""
    if stance == "defensive":
        return math.floor(pool * 1.5)
    if stance == "offensive":
        return math.ceil(pool / 2)
    return pool


def apply_stance_to_accuracy(pool: int, stance: str) -> int:
    if stance == "offensive":
        return math.floor(pool * 1.5)
    if stance == "defensive":
        return math.ceil(pool / 2)
    return pool


def dodge_pool(base_dodge: int, stance: str, dodge_penalty: int, directed_bonus: int = 0) -> int:
    """Final dodge dice pool.

    A zero base falls back to 3 dice. Penalty can never take the pool below 1,
    and the Directed bonus is added after the floor.
    """
    pool = base_dodge or DEFAULT_DODGE_POOL
    pool = apply_stance_to_dodge(pool, stance)
    pool = max(1, pool - dodge_penalty)
    return pool + max(0, directed_bonus)


def armor_piercing_value(rank: int) -> int:
    return rank * 2


def compute_damage(
    base_damage: int,
    accuracy_successes: int,
    dodge_successes: int,
    target_armor: int,
    armor_piercing: int,
) -> DamageBreakdown:
    """Resolve accuracy vs dodge into a damage breakdown.

    net = accuracy - dodge; the attack hits when net >= 0 and always deals
    at least 1 damage on a hit.
    """
    net = accuracy_successes - dodge_successes
    hit = net >= 0
    effective_armor = max(0, target_armor - armor_piercing)
    final = max(1, base_damage + net - effective_armor) if hit else 0
    return DamageBreakdown(
        base_damage=base_damage,
        net_successes=net,
        target_armor=target_armor,
        armor_piercing=armor_piercing,
        effective_armor=effective_armor,
        final_damage=final,
        hit=hit,
    )


def should_apply_effect(attack_type: str, damage: int) -> bool:
    """Support attacks always land their effect; damage attacks need 2+ damage."""
    if attack_type == "support":
        return True
    return damage >= 2


def effect_duration(net_successes: int, bonus: int = 0) -> int:
    return max(1, net_successes) + bonus


def action_cost_for_attack(bolstered: bool) -> int:
    return 2 if bolstered else 1


def determine_turn_order(combatants: list[tuple[str, int, int]]) -> list[str]:
    """Sort combatants by initiative (highest first).

    Args:
        combatants: list of (participant_id, initiative, initiative_roll)
    Returns:
        list of participant ids. Ties fall back to the raw roll, then the id,
        so the same encounter always sorts the same way.
    """
    ordered = sorted(combatants, key=lambda c: (-c[1], -c[2], c[0]))
    return [pid for pid, _, _ in ordered]
